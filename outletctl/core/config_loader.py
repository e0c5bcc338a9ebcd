"""Loading and validation of YAML accessory definitions."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from outletctl.core.errors import ConfigurationError
from outletctl.core.model import (
    AccessoryConfig,
    AccessoryInfo,
    Credentials,
    DeviceSpec,
    TransportSpec,
)
from outletctl.core.validation import check_category, check_credentials

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigurationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedAccessories:
    accessories: dict[str, AccessoryConfig]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("outletctl.schemas").joinpath("accessory.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _accessory_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "outletctl/accessories", xdg_data / "outletctl/accessories"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not read accessory file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Accessory file {path} must contain a mapping at root")
    return loaded


def _build_accessory(doc: dict[str, Any], source: Path | Traversable) -> AccessoryConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigurationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    context = f"Accessory '{doc['id']}' in {source}"
    credentials = Credentials(
        username=doc["credentials"]["username"].strip().upper(),
        pincode=doc["credentials"]["pincode"].strip(),
    )
    check_credentials(credentials, context=context)
    check_category(doc["category"], context=context)

    info = doc.get("info", {})
    device = doc.get("device", {})
    transport = doc.get("transport", {"type": "hap"})
    return AccessoryConfig(
        id=doc["id"],
        name=doc["name"],
        namespace=doc["namespace"],
        category=doc["category"],
        credentials=credentials,
        info=AccessoryInfo(
            manufacturer=info.get("manufacturer"),
            model=info.get("model"),
            serial_number=info.get("serial_number"),
            firmware_revision=info.get("firmware_revision"),
        ),
        device=DeviceSpec(
            id=int(device.get("id", 0)),
            initial_power=device.get("initial_power", False),
        ),
        transport=TransportSpec(
            type=transport["type"],
            port=int(transport.get("port", 51826)),
            advertiser=transport.get("advertiser", "default"),
            address=transport.get("address"),
        ),
    )


def _iter_packaged_accessory_paths() -> list[Traversable]:
    root = resources.files("outletctl.accessories")
    return [item for item in root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_accessory_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _accessory_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_accessories() -> LoadedAccessories:
    accessories: dict[str, AccessoryConfig] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_accessory_paths(), key=lambda p: p.name):
        accessory = _build_accessory(_read_yaml(path), path)
        accessories[accessory.id] = accessory

    for path in _iter_user_accessory_paths():
        accessory = _build_accessory(_read_yaml(path), path)
        if accessory.id in accessories:
            warning = f"User accessory '{accessory.id}' overrides packaged accessory"
            LOGGER.warning(warning)
            warnings.append(warning)
        accessories[accessory.id] = accessory

    return LoadedAccessories(accessories=accessories, warnings=tuple(warnings))
