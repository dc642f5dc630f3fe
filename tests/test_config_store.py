import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json
import pytest
from rental_engine.models import BusinessConfig
from rental_engine.catalog import PricingCatalog
from rental_engine.config_store import (
    config_path, export_config_json, import_config_json, load_config, save_config,
)
from rental_engine.errors import ValidationError


def test_config_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.delenv("RENTAL_CONFIG_PATH", raising=False)
    assert config_path() == "rental_config.json"
    target = str(tmp_path / "custom.json")
    monkeypatch.setenv("RENTAL_CONFIG_PATH", target)
    assert config_path() == target


def test_load_writes_defaults_on_first_use(tmp_path):
    path = tmp_path / "config.json"
    cfg = load_config(str(path))
    assert path.exists()
    assert [s.id for s in cfg.studios] == ["studio-a", "studio-b", "studio-c"]
    data = json.loads(path.read_text())
    assert data["lockers"]["total_count"] == 8


def test_save_and_reload_keeps_edits(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setenv("RENTAL_CONFIG_PATH", str(path))
    catalog = PricingCatalog(BusinessConfig())
    catalog.add_studio("Studio D", 12, size=18)
    catalog.cfg.costs.rent = 900
    save_config(catalog.cfg)
    reloaded = load_config()
    assert reloaded.studios[-1].monthly_rate == 192
    assert reloaded.costs.rent == 900
    assert reloaded.lockers.dimensions.depth == 260
    # no temporary files left behind
    assert [p.name for p in tmp_path.iterdir()] == ["config.json"]


def test_save_rejects_config_without_studios(tmp_path):
    cfg = BusinessConfig(studios=[])
    with pytest.raises(ValidationError):
        save_config(cfg, str(tmp_path / "config.json"))
    assert not (tmp_path / "config.json").exists()


def test_import_rejects_malformed_documents():
    with pytest.raises(ValidationError):
        import_config_json("{not json")
    with pytest.raises(ValidationError):
        import_config_json(json.dumps({"studios": []}))
    with pytest.raises(ValidationError):
        import_config_json(json.dumps([1, 2, 3]))
    doc = json.loads(export_config_json(BusinessConfig()))
    doc["costs"]["rent"] = -5
    with pytest.raises(ValidationError):
        import_config_json(json.dumps(doc))
    doc = json.loads(export_config_json(BusinessConfig()))
    doc["studios"][0]["colour"] = "red"
    with pytest.raises(ValidationError):
        import_config_json(json.dumps(doc))
