"""Pattern Resolver - which listeners fire for an emitted name."""

import logging
from typing import Any, Dict, List

from eventbus.config import BusConfig
from eventbus.registry import WILDCARD, ListenerRecord, ListenerRegistry

logger = logging.getLogger(__name__)


class PatternResolver:
    """
    Computes the dispatch snapshot for an event name.

    Sources, in concatenation order:
    1. exact registrations under the literal name
    2. ``*`` patterns whose matcher accepts the whole name
    3. namespace ancestors: ``a:*`` and ``a:b:*`` for ``a:b:c``

    Records are deduplicated by identity (first occurrence wins) and then
    stable-sorted by priority, highest first.
    """

    def __init__(self, registry: ListenerRegistry, config: BusConfig):
        self.registry = registry
        self.config = config

    def resolve(self, event_name: str) -> List[ListenerRecord]:
        candidates = self.registry.exact(event_name)

        if self.config.wildcards_enabled:
            candidates.extend(self.wildcard_listeners(event_name))

        if self.config.namespaces_enabled:
            candidates.extend(self.namespace_listeners(event_name))

        unique: Dict[Any, ListenerRecord] = {}
        for record in candidates:
            unique.setdefault(record.identity, record)

        resolved = sorted(unique.values(), key=lambda r: -r.priority)

        if self.config.debug:
            logger.debug(
                f"Resolved {event_name} to {len(resolved)} listeners "
                f"({len(candidates)} before dedupe)"
            )
        return resolved

    def wildcard_listeners(self, event_name: str) -> List[ListenerRecord]:
        listeners: List[ListenerRecord] = []
        for pattern, matcher in self.registry.wildcard_items():
            if matcher.fullmatch(event_name):
                listeners.extend(self.registry.exact(pattern))
        return listeners

    def namespace_listeners(self, event_name: str) -> List[ListenerRecord]:
        delimiter = self.config.delimiter
        parts = event_name.split(delimiter)
        listeners: List[ListenerRecord] = []
        for i in range(1, len(parts)):
            namespace = delimiter.join(parts[:i]) + delimiter + WILDCARD
            listeners.extend(self.registry.exact(namespace))
        return listeners
