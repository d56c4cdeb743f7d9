import os
import logging

from bazaar import main as main_mod


CONFIG = """
owner: "0xowner"
metrics:
  enabled: false
catalog:
  - id: 1
    name: Shoes
    category: Clothing
    cost: 1000000000000000000
    rating: 4
    stock: 5
  - id: 2
    name: Hat
    cost: 3
"""


def test_offline_demo_buys_withdraws_and_exports(tmp_path, monkeypatch, caplog):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "config.yaml").write_text(CONFIG)
    monkeypatch.setenv("OFFLINE_DEMO", "1")
    monkeypatch.delenv("BAZAAR_OWNER", raising=False)
    monkeypatch.delenv("BAZAAR_CONFIG", raising=False)
    published = []
    monkeypatch.setattr("bazaar.ledger.ledger.publish_event", published.append)
    caplog.set_level(logging.INFO)

    main_mod.main()

    out = "\n".join([r.message for r in caplog.records])
    assert "order placed: buyer=" in out
    assert f"withdrawn: {10**18 + 3} -> 0xowner" in out
    assert "marketplace demo complete" in out
    assert [e.event.event_type for e in published] == ["listed", "listed", "purchased", "purchased", "withdrawn"]
    assert os.path.exists("data/catalog.parquet")
    assert os.path.exists("data/orders.parquet")


def test_build_ledger_lists_catalog(tmp_path, monkeypatch):
    monkeypatch.setenv("BAZAAR_OWNER", "0xowner")
    monkeypatch.setattr("bazaar.ledger.ledger.publish_event", lambda env: None)
    p = tmp_path / "c.yaml"
    p.write_text(CONFIG)
    from bazaar.config.loader import load_settings

    ledger = main_mod.build_ledger(load_settings(str(p)))
    assert ledger.get_owner() == "0xowner"
    assert ledger.get_item(2).name == "Hat"
    assert ledger.get_item(2).category == ""


def _settings(monkeypatch, tmp_path, text):
    monkeypatch.setenv("BAZAAR_OWNER", "0xowner")
    monkeypatch.delenv("PROMETHEUS_PORT", raising=False)
    p = tmp_path / "c.yaml"
    p.write_text(text)
    from bazaar.config.loader import load_settings

    return load_settings(str(p))


def test_start_metrics_binds_port_and_seeds_balance(tmp_path, monkeypatch):
    from prometheus_client import REGISTRY

    monkeypatch.delenv("DISABLE_PROMETHEUS", raising=False)
    started = []
    monkeypatch.setattr(main_mod, "start_http_server", started.append)
    settings = _settings(monkeypatch, tmp_path, "ledger_name: seeded\nmetrics:\n  enabled: true\n  port: 9321\n")
    ledger = main_mod.Ledger(owner=settings.owner, name=settings.ledger_name, publisher=lambda env: None)

    assert main_mod.start_metrics(settings, ledger) == 9321
    assert started == [9321]
    assert REGISTRY.get_sample_value("ledger_balance", {"ledger": "seeded"}) == 0.0


def test_start_metrics_tolerates_busy_port(tmp_path, monkeypatch, caplog):
    def _busy(port):
        raise OSError("address in use")

    monkeypatch.delenv("DISABLE_PROMETHEUS", raising=False)
    monkeypatch.setattr(main_mod, "start_http_server", _busy)
    caplog.set_level(logging.WARNING)
    settings = _settings(monkeypatch, tmp_path, "metrics:\n  port: 9322\n")
    ledger = main_mod.Ledger(owner=settings.owner, publisher=lambda env: None)

    assert main_mod.start_metrics(settings, ledger) is None
    assert "cannot export metrics on :9322" in caplog.text


def test_start_metrics_respects_disabled_settings(tmp_path, monkeypatch):
    started = []
    monkeypatch.setattr(main_mod, "start_http_server", started.append)
    settings = _settings(monkeypatch, tmp_path, "metrics:\n  enabled: false\n")
    ledger = main_mod.Ledger(owner=settings.owner, publisher=lambda env: None)

    assert main_mod.start_metrics(settings, ledger) is None
    assert started == []
