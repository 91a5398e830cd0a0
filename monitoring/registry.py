"""
============================================================================
PING MONITOR - TARGET REGISTRY
============================================================================
Encapsulates the set of configured probe targets behind a tiny API and a
lock, so the control surface and the scheduler never touch a shared list
directly.

- State:
    _targets: {target_id -> PingTarget}, insertion ordered
    _lock:    threading.RLock protecting every read and write
- Outputs are copies; callers mutate targets only through update()/toggle().
- Ids are random and never reused, even after removal.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import threading
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from exceptions.registry import DuplicateTargetError, NotFoundError
from exceptions.validation import ValidationException
from monitoring.models import PingTarget, new_target_id
from utils.logger import get_logger
from utils.validators import AddressValidator, validate_label


logger = get_logger("TargetRegistry")


class TargetRegistry:
    """
    In-memory CRUD store for PingTargets.

    Usage
    -----
        registry = TargetRegistry()
        target = registry.add("1.1.1.1", "Cloudflare")
        registry.toggle(target.id)
        registry.list()
    """

    UPDATABLE_FIELDS = ("address", "label", "enabled")

    def __init__(self, targets: Optional[Iterable[PingTarget]] = None) -> None:
        self._lock = threading.RLock()
        self._targets: Dict[str, PingTarget] = {}
        self._issued_ids = set()
        if targets:
            self.replace_all(targets)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(self, address: str, label: Optional[str] = None) -> PingTarget:
        """
        Register a new enabled target.

        Raises
        ------
        InvalidAddressError
            The address is empty or malformed.
        DuplicateTargetError
            An enabled target with the same address already exists.
        """
        address = AddressValidator.validate(address)
        label = validate_label(label, address)

        with self._lock:
            existing = self._find(address, enabled=True)
            if existing is not None:
                raise DuplicateTargetError(
                    f"An enabled target for '{address}' already exists",
                    address=address,
                    existing_id=existing.id,
                )

            target = PingTarget(
                id=self._fresh_id(),
                address=address,
                label=label,
                enabled=True,
            )
            self._targets[target.id] = target
            logger.info(f"Added target {target.id} ({address}, '{label}')")
            return replace(target)

    def remove(self, target_id: str) -> PingTarget:
        """Remove a target. Returns the removed target."""
        with self._lock:
            target = self._targets.pop(target_id, None)
        if target is None:
            raise NotFoundError(entity_id=target_id)
        logger.info(f"Removed target {target_id} ({target.address})")
        return target

    def update(self, target_id: str, **fields: Any) -> PingTarget:
        """
        Change address, label and/or enabled of an existing target.

        A label set to an empty string falls back to the address.
        """
        unknown = set(fields) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValidationException(
                f"Unknown target field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        with self._lock:
            current = self._get(target_id)

            address = current.address
            if "address" in fields:
                address = AddressValidator.validate(fields["address"])

            if "label" in fields:
                label = validate_label(fields["label"], address)
            elif current.label == current.address:
                # Label was defaulted; keep following the address
                label = address
            else:
                label = current.label

            enabled = current.enabled
            if "enabled" in fields:
                if not isinstance(fields["enabled"], bool):
                    raise ValidationException(
                        "enabled must be a boolean", field="enabled", value=fields["enabled"]
                    )
                enabled = fields["enabled"]

            updated = replace(current, address=address, label=label, enabled=enabled)
            self._targets[target_id] = updated
            logger.debug(f"Updated target {target_id}: {fields}")
            return replace(updated)

    def toggle(self, target_id: str) -> PingTarget:
        """Flip the enabled flag of a target."""
        with self._lock:
            current = self._get(target_id)
            updated = replace(current, enabled=not current.enabled)
            self._targets[target_id] = updated
        logger.info(
            f"Target {target_id} {'enabled' if updated.enabled else 'disabled'}"
        )
        return replace(updated)

    def replace_all(self, targets: Iterable[PingTarget]) -> List[PingTarget]:
        """
        Replace the whole target list (used when a config is applied).

        Every address is validated; ids are kept so existing statistics
        stay attached to their targets.
        """
        validated: Dict[str, PingTarget] = {}
        for target in targets:
            if target.id in validated:
                raise ValidationException(
                    f"Duplicate target id '{target.id}'", field="id", value=target.id
                )
            address = AddressValidator.validate(target.address)
            validated[target.id] = PingTarget(
                id=target.id,
                address=address,
                label=validate_label(target.label, address),
                enabled=bool(target.enabled),
            )

        with self._lock:
            self._targets = validated
            self._issued_ids.update(validated)
            return [replace(t) for t in self._targets.values()]

    # ------------------------------------------------------------------
    # READS
    # ------------------------------------------------------------------

    def get(self, target_id: str) -> PingTarget:
        with self._lock:
            return replace(self._get(target_id))

    def contains(self, target_id: str) -> bool:
        with self._lock:
            return target_id in self._targets

    def list(self) -> List[PingTarget]:
        """All targets in insertion order."""
        with self._lock:
            return [replace(t) for t in self._targets.values()]

    def enabled_targets(self) -> List[PingTarget]:
        """Snapshot of the enabled targets, taken at tick start."""
        with self._lock:
            return [replace(t) for t in self._targets.values() if t.enabled]

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    def _get(self, target_id: str) -> PingTarget:
        target = self._targets.get(target_id)
        if target is None:
            raise NotFoundError(entity_id=target_id)
        return target

    def _find(self, address: str, enabled: bool) -> Optional[PingTarget]:
        for target in self._targets.values():
            if target.address == address and target.enabled == enabled:
                return target
        return None

    def _fresh_id(self) -> str:
        target_id = new_target_id()
        while target_id in self._issued_ids:
            target_id = new_target_id()
        self._issued_ids.add(target_id)
        return target_id
