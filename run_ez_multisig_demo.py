#!/usr/bin/env python3
"""
In-process demo of the multisig tracker.

N parties share a loopback transport. Party 0 creates an m-of-n fund and
announces it, the others accept the invite, party 0 proposes a spend and
every other party signs it. Prints a JSON summary and exits non-zero when
an ack or signature is missing.

Channel and tracker settings are read from --config (defaults when the
file is absent); every party runs on the loopback transport regardless.
"""

import argparse
import asyncio
import json
import secrets
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from modules.ez_multisig.config import TrackConfig, load_config
from modules.ez_multisig.interfaces import Contact, IdentitySession
from modules.ez_multisig.memory import (
    MemoryContactDirectory,
    MemoryFund,
    MemoryFundStore,
    MemoryTaskStore,
    parse_multisig_script,
    tx_hash,
)
from modules.ez_multisig.models import SECTION_INVITE
from modules.ez_multisig.service import MultisigTrackService
from modules.ez_p2p.channel import PeerChannel
from modules.ez_p2p.transport.loopback import LoopbackHub, LoopbackTransport


@dataclass
class Party:
    index: int
    fund_key: bytes
    channel: PeerChannel
    session: IdentitySession
    service: MultisigTrackService
    watched: List[str] = field(default_factory=list)
    peers: Dict[int, Any] = field(default_factory=dict)


def _fund_key() -> bytes:
    private_key = ec.generate_private_key(ec.SECP256K1())
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.CompressedPoint,
    )


async def _settle(parties: List[Party]) -> None:
    while any(p.channel.busy for p in parties):
        for p in parties:
            await p.channel.drain()


def _build_party(hub: LoopbackHub, index: int, cfg: TrackConfig) -> Party:
    address = f"loop:{index}"
    channel = PeerChannel(
        replace(cfg.p2p, transport="loopback", node_id=f"party-{index}", identity_private_key_pem=None),
        transport=LoopbackTransport(hub, address),
    )
    watched: List[str] = []
    session = IdentitySession(
        tasks=MemoryTaskStore(),
        funds=MemoryFundStore(),
        contacts=MemoryContactDirectory(),
        parse_script=parse_multisig_script,
        watch_address=watched.append,
        name=f"party-{index}",
    )
    service = MultisigTrackService(cfg.multisig)
    service.bind_channel(session, channel)
    return Party(index=index, fund_key=_fund_key(), channel=channel, session=session, service=service, watched=watched)


async def run_demo(parties: int = 3, threshold: int = 2, cfg: Optional[TrackConfig] = None) -> Dict[str, Any]:
    cfg = cfg or TrackConfig()
    hub = LoopbackHub()
    nodes = [_build_party(hub, i, cfg) for i in range(parties)]
    for node in nodes:
        await node.channel.start()

    for node in nodes:
        for other in nodes:
            if other is node:
                continue
            contact = node.session.contacts.add(Contact(name=f"party-{other.index}", pub_keys=[other.fund_key]))
            node.peers[other.index] = node.channel.connect(other.channel.pub_key, f"loop:{other.index}", contact=contact)

    owner, others = nodes[0], nodes[1:]
    fund = MemoryFund.create(threshold, [n.fund_key for n in nodes], name="vault")
    owner.session.funds.add_fund(fund)
    owner.service.announce(owner.session, fund)
    for peer in owner.peers.values():
        owner.service.on_contact_available(owner.session, peer)
    await _settle(nodes)

    accepted = 0
    for node in others:
        for invite in node.session.tasks.get_tasks(SECTION_INVITE):
            node.service.accept(node.session, invite)
            accepted += 1

    tx_hex = secrets.token_bytes(96).hex()
    fund.import_transaction(tx_hex)
    spend_task = owner.service.spend(owner.session, tx_hex, [{"address": fund.address}])
    for peer in owner.peers.values():
        owner.service.on_contact_available(owner.session, peer)
    await _settle(nodes)

    txid = tx_hash(tx_hex)
    for node in others:
        held = node.session.funds.search(address=fund.address)
        if held is None or held.get_spend(txid) is None:
            continue
        node.service.sign(node.session, held, txid, secrets.token_bytes(71))
        node.service.on_contact_available(node.session, node.peers[owner.index])
    await _settle(nodes)

    for node in nodes:
        await node.channel.stop()

    return {
        "parties": parties,
        "threshold": threshold,
        "fund_address": fund.address,
        "invites_accepted": accepted,
        "spend_acks": sum(1 for slot in spend_task.participants if slot.ack),
        "signatures": len(fund.signatures.get(txid, [])),
        "pending_requests": len(owner.service.tracker),
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the EZ multisig tracking demo")
    parser.add_argument("--config", default="ezmultisig.yaml")
    parser.add_argument("--parties", type=int, default=3)
    parser.add_argument("--threshold", type=int, default=2)
    args = parser.parse_args(argv)

    if not 2 <= args.parties <= 16 or not 1 <= args.threshold <= args.parties:
        print("FAIL: need 2..16 parties and 1 <= threshold <= parties")
        return 2

    cfg = load_config(args.config)
    summary = asyncio.run(run_demo(args.parties, args.threshold, cfg))
    print(json.dumps(summary, indent=2))
    expected = args.parties - 1
    if summary["spend_acks"] != expected or summary["signatures"] != expected:
        print("FAIL: missing acks or signatures")
        return 1
    print("PASS: multisig round trip completed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
