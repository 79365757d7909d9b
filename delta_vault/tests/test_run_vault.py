from __future__ import annotations

import json
import sys

import pytest

import delta_vault.core.config as config
from delta_vault import run_vault


@pytest.fixture(autouse=True)
def empty_config():
    original = dict(config.CONFIG)
    config.set_config({})
    yield
    config.set_config(original)


@pytest.mark.asyncio
async def test_status_of_seeded_vault():
    status = await run_vault.run_vault("status", seed_deposit=1_000)
    assert status["net_deposit"] == pytest.approx(1_000)
    assert status["strategy_status"]["total_shares"] > 0


@pytest.mark.asyncio
async def test_gate_and_update():
    gate = await run_vault.run_vault("gate", seed_deposit=1_000)
    assert gate["eligible"] and "time_elapsed" in gate["reasons"]

    ok, msg = await run_vault.run_vault("update", seed_deposit=1_000)
    assert ok, msg


@pytest.mark.asyncio
async def test_preview_uses_config_overrides():
    config.set_config({"vault": {"deposit_cap": 10**18}})
    preview = await run_vault.run_vault("preview", amount=500)
    assert preview["assets"] == 500 * 10**18
    assert preview["max_deposit"] == 10**18


@pytest.mark.asyncio
async def test_unknown_action():
    with pytest.raises(ValueError):
        await run_vault.run_vault("launch")


def test_main_prints_json(monkeypatch, capsys, tmp_path):
    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({"sandbox": {"user_basket": 5_000}}))
    monkeypatch.setattr(
        sys,
        "argv",
        ["run_vault", "--config", str(cfg), "--action", "preview", "--amount", "100"],
    )
    run_vault.main()
    out = json.loads(capsys.readouterr().out)
    assert out["assets"] == 100 * 10**18
