import pytest

from bazaar.config.loader import load_settings


CONFIG = """
ledger_name: shop
owner: "0xfromyaml"
metrics:
  enabled: false
  port: 9100
catalog:
  - id: 1
    name: Shoes
    category: Clothing
    image: img
    cost: 1000000000000000000
    rating: 4
    stock: 5
"""


def _write(tmp_path, text):
    p = tmp_path / "config.yaml"
    p.write_text(text)
    return str(p)


def test_load_settings_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("BAZAAR_OWNER", raising=False)
    monkeypatch.delenv("PROMETHEUS_PORT", raising=False)
    s = load_settings(_write(tmp_path, CONFIG))
    assert s.ledger_name == "shop"
    assert s.owner == "0xfromyaml"
    assert s.metrics.enabled is False and s.metrics.port == 9100
    assert s.catalog[0].cost == 10**18
    assert s.catalog[0].stock == 5


def test_env_overrides_owner_and_port(tmp_path, monkeypatch):
    monkeypatch.setenv("BAZAAR_OWNER", "0xfromenv")
    monkeypatch.setenv("PROMETHEUS_PORT", "9200")
    s = load_settings(_write(tmp_path, CONFIG))
    assert s.owner == "0xfromenv"
    assert s.metrics.port == 9200


def test_missing_owner_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("BAZAAR_OWNER", raising=False)
    with pytest.raises(ValueError):
        load_settings(_write(tmp_path, "metrics:\n  port: 1\n"))


def test_missing_file_uses_env_only(tmp_path, monkeypatch):
    monkeypatch.setenv("BAZAAR_OWNER", "0xenvonly")
    s = load_settings(str(tmp_path / "nope.yaml"))
    assert s.owner == "0xenvonly"
    assert s.catalog == []


def test_catalog_entry_rejects_negative_cost(tmp_path, monkeypatch):
    monkeypatch.setenv("BAZAAR_OWNER", "0xo")
    bad = "catalog:\n  - id: 1\n    name: x\n    cost: -1\n"
    with pytest.raises(ValueError):
        load_settings(_write(tmp_path, bad))
