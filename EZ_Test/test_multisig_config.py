import json
import tempfile
from pathlib import Path

import pytest

from modules.ez_multisig.config import MultisigConfig, load_config
from modules.ez_multisig.models import SECTION_ANNOUNCE, SECTION_SPEND


def test_missing_file_gives_defaults():
    with tempfile.TemporaryDirectory() as td:
        cfg = load_config(Path(td) / "absent.yaml")
        assert cfg.p2p.transport == "tcp"
        assert cfg.p2p.network_id == "devnet"
        assert cfg.multisig.sections == ["multisig", "multisig-announce", "multisig-sign"]
        assert cfg.multisig.first_correlation_id == 1


def test_load_config_yaml_subset():
    with tempfile.TemporaryDirectory() as td:
        p = Path(td) / "ezmultisig.yaml"
        p.write_text(
            (
                "# local devnet\n"
                "p2p:\n  listen_host: 127.0.0.1\n  listen_port: 0\n  transport: loopback\n"
                "  protocol_version: 0.1\n  enforce_identity_verification: true\n  node_id: ~\n"
                "multisig:\n  sections: [\"multisig\", \"multisig-announce\"]\n  log_level: DEBUG\n"
            ),
            encoding="utf-8",
        )
        cfg = load_config(p)
        assert cfg.p2p.listen_port == 0
        assert cfg.p2p.transport == "loopback"
        assert cfg.p2p.protocol_version == "0.1"
        assert cfg.p2p.enforce_identity_verification is True
        assert cfg.p2p.node_id is None
        assert cfg.multisig.sections == [SECTION_SPEND, SECTION_ANNOUNCE]
        assert cfg.multisig.log_level == "DEBUG"


def test_load_config_json():
    with tempfile.TemporaryDirectory() as td:
        p = Path(td) / "ezmultisig.json"
        p.write_text(
            json.dumps({"p2p": {"network_id": "testnet", "max_neighbors": 4}, "multisig": {"first_correlation_id": 50}}),
            encoding="utf-8",
        )
        cfg = load_config(p)
        assert cfg.p2p.network_id == "testnet"
        assert cfg.p2p.max_neighbors == 4
        assert cfg.multisig.first_correlation_id == 50


def test_non_object_config_is_rejected():
    with tempfile.TemporaryDirectory() as td:
        p = Path(td) / "ezmultisig.json"
        p.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(ValueError, match="config_not_object"):
            load_config(p)


def test_unknown_section_is_rejected():
    with pytest.raises(ValueError, match="unknown_section:multisig-invite"):
        MultisigConfig(sections=["multisig", "multisig-invite"])
