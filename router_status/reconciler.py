
# Reconciliation: which routers to keep, add, or remove.

# the configured router list is diffed against the accessories the host
# already knows, keyed by accessory id:
#   - configured and known     -> keep (reuse the cached accessory)
#   - configured, not known    -> add
#   - known, not configured    -> remove
#
# entries sharing an identity key collapse onto the first one, so one router
# can never own two accessories or two timers.

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from router_status.models import DeviceConfig

H = TypeVar("H")


def _same(key: str) -> str:
    return key


@dataclass
class Reconciliation(Generic[H]):
    keep: list[tuple[DeviceConfig, H]] = field(default_factory=list)
    add: list[DeviceConfig] = field(default_factory=list)
    remove: list[H] = field(default_factory=list)
    # configured entries dropped because an earlier entry has the same identity
    duplicates: list[DeviceConfig] = field(default_factory=list)


def reconcile(
    configured: Iterable[DeviceConfig],
    known: Mapping[str, H],
    identity: Callable[[str], str] = _same,
) -> Reconciliation[H]:
    """
    Diff the configured routers against the accessories the host already knows.

    `identity` turns a router's identity key into the id `known` is keyed by
    (the host's UUID generator); by default the identity key itself is used.

    Configured order is kept for keep/add so registration order is stable.
    Removals are the set difference known - configured, in `known`'s order.
    Pure: nothing is registered or cancelled here, see RouterStatusPlatform.
    """
    result: Reconciliation[H] = Reconciliation()
    seen: set[str] = set()

    for device in configured:
        uid = identity(device.identity_key)
        if uid in seen:
            result.duplicates.append(device)
            continue
        seen.add(uid)

        if uid in known:
            result.keep.append((device, known[uid]))
        else:
            result.add.append(device)

    result.remove = [handle for uid, handle in known.items() if uid not in seen]
    return result
