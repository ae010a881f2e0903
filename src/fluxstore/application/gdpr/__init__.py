"""Application GDPR – right to erasure via crypto-shredding."""
from fluxstore.application.gdpr.erasure import (
    CryptoShreddingEraser,
    DataErasedEvent,
    Erasable,
    ErasureResult,
    ErasureService,
)

__all__ = [
    "CryptoShreddingEraser",
    "DataErasedEvent",
    "Erasable",
    "ErasureResult",
    "ErasureService",
]
