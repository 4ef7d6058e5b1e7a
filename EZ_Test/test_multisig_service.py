import pytest

from EZ_Test.multisig_helpers import RecordingChannel, make_fund_setup, make_peer, make_session
from modules.ez_multisig.config import MultisigConfig
from modules.ez_multisig.messages import MultisigSpend
from modules.ez_multisig.models import (
    SECTION_ANNOUNCE,
    SECTION_SIGN,
    SECTION_SPEND,
    TaskKind,
    UnknownFundError,
)
from modules.ez_multisig.service import MultisigTrackService

TX_HEX = "0100000000" + "ee" * 50


def test_spend_without_known_fund_raises():
    session = make_session()
    service = MultisigTrackService()

    with pytest.raises(UnknownFundError):
        service.spend(session, TX_HEX, [{"address": "0xmissing"}])
    with pytest.raises(ValueError, match="pending_required"):
        service.spend(session, TX_HEX, [])
    assert session.tasks.get_tasks(SECTION_SPEND) == []


def test_unknown_fund_error_is_a_value_error():
    assert issubclass(UnknownFundError, ValueError)


def test_local_operations_file_tasks_by_section():
    session, fund, contacts = make_fund_setup(n=2, m=2)
    service = MultisigTrackService()

    announce = service.announce(session, fund)
    sign = service.sign(session, fund, "ab" * 32, "3045")
    spend = service.spend(session, TX_HEX, [{"address": fund.address}])

    assert session.tasks.get_tasks(SECTION_ANNOUNCE) == [announce]
    assert session.tasks.get_tasks(SECTION_SIGN) == [sign]
    assert session.tasks.get_tasks(SECTION_SPEND) == [spend]
    assert announce.kind == TaskKind.ANNOUNCE
    assert sign.hash == "ab" * 32 and sign.signature == "3045"
    assert spend.tx == TX_HEX
    assert spend.in_pocket == fund.address
    assert all(len(t.participants) == 2 for t in (announce, sign, spend))


def test_wallet_closing_event_clears_pending_requests():
    session, fund, contacts = make_fund_setup(n=3, m=2)
    service = MultisigTrackService()
    service.spend(session, TX_HEX, [{"address": fund.address}])
    service.on_contact_available(session, make_peer(contacts[1]))
    service.on_contact_available(session, make_peer(contacts[2]))
    assert len(service.tracker) == 2

    service.handle_wallet_event({"type": "opened"})
    assert len(service.tracker) == 2

    service.handle_wallet_event({"type": "closing"})
    assert len(service.tracker) == 0


def test_contacts_event_triggers_dispatch():
    session, fund, contacts = make_fund_setup(n=3, m=2)
    service = MultisigTrackService()
    service.spend(session, TX_HEX, [{"address": fund.address}])
    peer = make_peer(contacts[1])

    service.handle_contacts_event(session, {"type": "contact", "peer": peer})

    assert len(peer.channel.messages(MultisigSpend)) == 1


def test_channel_event_binds_all_inbound_handlers():
    session = make_session()
    service = MultisigTrackService()
    channel = RecordingChannel()

    service.handle_channel_event(session, {"type": "initChannel", "channel": channel})

    assert set(channel.callbacks) == {"MultisigAnnounce", "MultisigSpend", "MultisigAck", "MultisigSign"}


def test_configured_sections_limit_dispatch():
    session, fund, contacts = make_fund_setup(n=3, m=2)
    service = MultisigTrackService(MultisigConfig(sections=[SECTION_SIGN]))
    service.spend(session, TX_HEX, [{"address": fund.address}])
    service.sign(session, fund, "cd" * 32, "30")
    peer = make_peer(contacts[1])

    assert service.on_contact_available(session, peer) == 1
    assert peer.channel.messages(MultisigSpend) == []


def test_first_correlation_id_is_configurable():
    session, fund, contacts = make_fund_setup(n=2, m=1)
    service = MultisigTrackService(MultisigConfig(first_correlation_id=1000))
    task = service.spend(session, TX_HEX, [{"address": fund.address}])

    service.on_contact_available(session, make_peer(contacts[1]))

    assert task.participants[1].sent == 1000
