import asyncio
import json
import tempfile
from pathlib import Path

from modules.ez_multisig.config import load_config
from run_ez_multisig_demo import main, run_demo


def test_demo_round_trip_collects_acks_and_signatures():
    summary = asyncio.run(run_demo(parties=3, threshold=2))

    assert summary["invites_accepted"] == 2
    assert summary["spend_acks"] == 2
    assert summary["signatures"] == 2
    assert summary["pending_requests"] == 0


def test_demo_cli_exit_codes():
    with tempfile.TemporaryDirectory() as td:
        absent = str(Path(td) / "absent.yaml")
        assert main(["--config", absent, "--parties", "3", "--threshold", "2"]) == 0
    assert main(["--parties", "1"]) == 2
    assert main(["--parties", "3", "--threshold", "4"]) == 2


def test_demo_runs_with_loaded_config():
    with tempfile.TemporaryDirectory() as td:
        p = Path(td) / "ezmultisig.json"
        p.write_text(
            json.dumps(
                {
                    "p2p": {"network_id": "demo-net", "enforce_identity_verification": True},
                    "multisig": {"first_correlation_id": 500, "log_level": "WARNING"},
                }
            ),
            encoding="utf-8",
        )
        summary = asyncio.run(run_demo(parties=4, threshold=3, cfg=load_config(p)))
        assert summary["spend_acks"] == 3
        assert summary["signatures"] == 3

        assert main(["--config", str(p), "--parties", "3", "--threshold", "2"]) == 0
