"""Application event sourcing – EventCodec.

Turns domain events into stored records and back:

* ``encode``: payload → encrypt personal fields → :class:`StoredEvent`
* ``open``: decrypt envelopes → upcast to the current schema version
* ``decode``: ``open`` → event dataclass
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable

from fluxstore.application.event_sourcing.event_map import EventTypeMap
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.kernel.ddd.domain_event import DomainEvent
from fluxstore.kernel.errors import SerializationError
from fluxstore.observability.correlation import CorrelationContext
from fluxstore.security.encryption.field_encryptor import FieldEncryptor
from fluxstore.security.encryption.keys import KeyCache

MetadataFactory = Callable[[DomainEvent], dict[str, Any]]

SEALED_KEY = "__sealed__"
SEALED_OWNER_KEY = "__owner__"


class EventCodec:
    """Encodes/decodes events through the :class:`EventTypeMap`.

    Without a :class:`FieldEncryptor` payloads are stored in clear; an event
    type map declaring personal fields then fails :meth:`check`.
    """

    def __init__(
        self,
        event_map: EventTypeMap,
        encryptor: FieldEncryptor | None = None,
        metadata_factory: MetadataFactory | None = None,
    ) -> None:
        self._event_map = event_map
        self._encryptor = encryptor
        self._metadata_factory = metadata_factory or (lambda _: {})

    @property
    def event_map(self) -> EventTypeMap:
        return self._event_map

    def new_cache(self) -> KeyCache | None:
        """Key cache for one logical operation (``None`` without encryption)."""
        return self._encryptor.new_cache() if self._encryptor is not None else None

    def check(self) -> None:
        """Validate the event map and that personal data can be encrypted."""
        self._event_map.validate()
        if self._encryptor is None:
            personal = sorted(
                name for name in self._event_map.registered_events()
                if self._event_map.personal_fields(name)
            )
            if personal:
                raise SerializationError(
                    "Events declare personal data but no FieldEncryptor is configured",
                    detail={"events": personal},
                )

    async def encode(
        self,
        event: DomainEvent,
        stream_name: str,
        cache: KeyCache | None = None,
    ) -> StoredEvent:
        schema = self._event_map.resolve(event.event_name)
        try:
            payload = event.to_payload()
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Cannot serialise '{event.event_name}'", payload_type=schema.event_cls.__name__, cause=exc
            ) from exc
        if self._encryptor is not None and cache is not None:
            payload = await self._encryptor.encrypt_payload(schema.event_name, payload, event.owner_id, cache)
        return StoredEvent(
            stream_id=event.aggregate_id,
            stream_name=stream_name,
            event_name=schema.event_name,
            payload=payload,
            event_version=schema.version,
            occurred_on=event.occurred_on,
            request_id=event.request_id or CorrelationContext.request_id(),
            owner_id=event.owner_id,
            meta_data=self._metadata_factory(event),
        )

    async def open(self, record: StoredEvent, cache: KeyCache | None = None) -> StoredEvent:
        """Return *record* with personal fields decrypted and the payload upcast.

        Raises :class:`~fluxstore.kernel.errors.SubjectErasedError` when the
        owner's key has been deleted.
        """
        payload = record.payload
        if self._encryptor is not None and cache is not None:
            payload = await self._encryptor.decrypt_payload(record.event_name, payload, record.owner_id, cache)
        version, payload = self._event_map.upcast(record.event_name, record.event_version, payload)
        return dataclasses.replace(record, payload=payload, event_version=version)

    async def seal_state(
        self,
        owner_id: str | None,
        data: dict[str, Any],
        label: str,
        cache: KeyCache | None,
    ) -> dict[str, Any]:
        """Encrypt snapshot state under the owner key so erasure covers snapshots too."""
        if owner_id is None or self._encryptor is None or cache is None:
            return data
        envelope = await self._encryptor.seal_value(owner_id, data, label, cache)
        return {SEALED_KEY: envelope, SEALED_OWNER_KEY: owner_id}

    async def open_state(self, data: dict[str, Any], label: str, cache: KeyCache | None) -> dict[str, Any]:
        if SEALED_KEY not in data:
            return data
        if self._encryptor is None or cache is None:
            raise SerializationError("Sealed snapshot state but no FieldEncryptor is configured")
        return await self._encryptor.open_value(data[SEALED_OWNER_KEY], data[SEALED_KEY], label, cache)

    async def decode(self, record: StoredEvent, cache: KeyCache | None = None) -> DomainEvent:
        opened = await self.open(record, cache)
        return self.to_event(opened)

    def to_event(self, opened: StoredEvent) -> DomainEvent:
        """Build the event dataclass from an already opened record."""
        schema = self._event_map.resolve(opened.event_name)
        try:
            return schema.event_cls.from_payload(
                opened.payload,
                aggregate_id=opened.stream_id,
                owner_id=opened.owner_id,
                request_id=opened.request_id,
                occurred_on=opened.occurred_on,
            )
        except (TypeError, ValueError, KeyError) as exc:
            raise SerializationError(
                f"Cannot decode '{opened.event_name}' v{opened.event_version} "
                f"at {opened.stream_id}@{opened.stream_version}",
                payload_type=schema.event_cls.__name__,
                cause=exc,
            ) from exc


__all__ = ["SEALED_KEY", "SEALED_OWNER_KEY", "EventCodec", "MetadataFactory"]
