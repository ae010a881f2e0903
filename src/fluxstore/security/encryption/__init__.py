"""Security – per-owner field encryption and crypto-shredding."""
from fluxstore.security.encryption.cipher import AesGcmFieldCipher
from fluxstore.security.encryption.fernet import MasterKeyWrapper
from fluxstore.security.encryption.field_encryptor import FieldEncryptor
from fluxstore.security.encryption.keys import KEY_SIZE, InMemoryKeyManager, KeyCache, KeyManager

__all__ = [
    "KEY_SIZE",
    "AesGcmFieldCipher",
    "FieldEncryptor",
    "InMemoryKeyManager",
    "KeyCache",
    "KeyManager",
    "MasterKeyWrapper",
]
