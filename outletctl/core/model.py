"""Core data models used across loader, adapter, service, and CLI."""

from __future__ import annotations

import enum
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

GetCallback = Callable[[Optional[Exception], Optional[bool]], None]
SetCallback = Callable[[Optional[Exception]], None]
IdentifyCallback = Callable[[Optional[Exception]], None]

# Exit code offsets, added to 128 on signal-triggered shutdown.
SHUTDOWN_SIGNALS: dict[str, int] = {"SIGINT": 2, "SIGTERM": 15}

# HAP accessory categories by name.
CATEGORIES: dict[str, int] = {
    "other": 1,
    "bridge": 2,
    "fan": 3,
    "garage_door_opener": 4,
    "lightbulb": 5,
    "door_lock": 6,
    "outlet": 7,
    "switch": 8,
    "thermostat": 9,
    "sensor": 10,
}

ADVERTISERS = ("default", "all")


class PublishState(enum.Enum):
    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"
    UNPUBLISHING = "unpublishing"
    CLOSED = "closed"


@dataclass(frozen=True)
class Credentials:
    username: str
    pincode: str


@dataclass(frozen=True)
class AccessoryInfo:
    manufacturer: str | None = None
    model: str | None = None
    serial_number: str | None = None
    firmware_revision: str | None = None


@dataclass(frozen=True)
class DeviceSpec:
    id: int = 0
    initial_power: bool = False


@dataclass(frozen=True)
class TransportSpec:
    type: str = "hap"
    port: int = 51826
    advertiser: str = "default"
    address: str | None = None


@dataclass(frozen=True)
class AccessoryConfig:
    id: str
    name: str
    namespace: str
    category: str
    credentials: Credentials
    info: AccessoryInfo = field(default_factory=AccessoryInfo)
    device: DeviceSpec = field(default_factory=DeviceSpec)
    transport: TransportSpec = field(default_factory=TransportSpec)


@dataclass(frozen=True)
class CharacteristicBinding:
    service: str
    characteristic: str
    on_get: Callable[[GetCallback], None]
    on_set: Callable[[object, SetCallback], None]
    on_identify: Callable[[bool, IdentifyCallback], None] | None = None


@dataclass(frozen=True)
class AccessoryRegistration:
    identifier: uuid.UUID
    display_name: str
    category: str | None
    credentials: Credentials | None
    advertiser: str = "default"
    port: int = 51826
    address: str | None = None
    info: AccessoryInfo = field(default_factory=AccessoryInfo)
    services: tuple[CharacteristicBinding, ...] = ()


@dataclass(frozen=True)
class PowerStatus:
    id: int
    power: bool

    def as_dict(self) -> dict[str, object]:
        return {"id": self.id, "power": self.power}
