"""Load and save the business configuration as a single JSON document"""
import json
import logging
import os
import tempfile
from dataclasses import asdict
from datetime import date

from .errors import ValidationError
from .models import (
    BusinessConfig, StudioConfig, LockerConfig, LockerDimensions, OperationalCosts,
    Discounts, BreakEvenTargets, PartnerSplit,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "rental_config.json"


class DateEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def config_path() -> str:
    return os.getenv("RENTAL_CONFIG_PATH", DEFAULT_CONFIG_PATH)


def config_to_dict(cfg: BusinessConfig) -> dict:
    return asdict(cfg)


def config_from_dict(data: dict) -> BusinessConfig:
    try:
        lockers = dict(data["lockers"])
        lockers["dimensions"] = LockerDimensions(**lockers.get("dimensions", {}))
        return BusinessConfig(
            studios=[StudioConfig(**s) for s in data["studios"]],
            lockers=LockerConfig(**lockers),
            costs=OperationalCosts(**data["costs"]),
            discounts=Discounts(**data["discounts"]),
            break_even=BreakEvenTargets(**data["break_even"]),
            partners=PartnerSplit(**data["partners"]),
        )
    except (KeyError, TypeError) as exc:
        raise ValidationError(f"malformed configuration document: {exc}") from exc


def export_config_json(cfg: BusinessConfig) -> str:
    return json.dumps(config_to_dict(cfg), indent=2, sort_keys=True, cls=DateEncoder)


def import_config_json(text: str) -> BusinessConfig:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"configuration is not valid JSON: {exc}") from exc
    return config_from_dict(data)


def save_config(cfg: BusinessConfig, path: str = None) -> str:
    """Replace the stored document atomically (write temp file, then rename)"""
    path = path or config_path()
    if not cfg.studios:
        raise ValidationError("configuration must contain at least one studio")
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp = tempfile.mkstemp(prefix=".rental_config.", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(export_config_json(cfg))
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.info("Saved configuration to %s", path)
    return path


def load_config(path: str = None) -> BusinessConfig:
    """Load the stored document, writing the defaults on first use"""
    path = path or config_path()
    if not os.path.exists(path):
        cfg = BusinessConfig()
        save_config(cfg, path)
        logger.info("No configuration at %s; created defaults", path)
        return cfg
    with open(path, encoding="utf-8") as fh:
        return import_config_json(fh.read())
