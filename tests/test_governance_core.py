"""
Governance core test suite

Coverage:
  Registry  : idempotent registration, unregistration
  Types     : bounded collections, tally arithmetic
  Lifecycle : block clock, derived proposal status
  Policy    : ban / allow lists, account list edits while pending
  Proposals : creation constraints, cancellation, closing
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qvote.config.loader import GovernanceConfig
from qvote.constants import BALANCE_MAX
from qvote.exceptions import (
    AlreadyStarted,
    Defect,
    DurationTooLong,
    DurationTooShort,
    EndBeforeStart,
    ListTooLarge,
    NotEnded,
    NotRegistered,
    OffchainDataTooLarge,
    ProposalNotFound,
    StartInPast,
    StartTooFarInFuture,
    Unauthorized,
)
from qvote.governance import (
    AccountListPolicy,
    BlockClock,
    BoundedAccountList,
    BoundedBytes,
    GovernanceRuntime,
    Origin,
    ProposalKind,
    ProposalLifecycleClock,
    ProposalStatus,
    ProposalStore,
    Tally,
    VoterRegistry,
)
from qvote.governance.events import (
    AccountListSet,
    ProposalCancelled,
    ProposalClosed,
    ProposalCreated,
    VoterRegistered,
    VoterUnregistered,
    last_event_of,
)
from qvote.tokens import BalanceLedger


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = "alice"
BOB = "bob"
CHARLIE = "charlie"
DAVE = "dave"
EVE = "eve"


def make_runtime(block=1, balances=None, voters=(ALICE, BOB), **config) -> GovernanceRuntime:
    """Runtime at *block* with *voters* registered and funded."""
    runtime = GovernanceRuntime(
        funds=BalanceLedger(balances=balances or {}),
        clock=BlockClock(block),
        config=GovernanceConfig(**config),
    )
    for who in voters:
        runtime.register_voter(Origin.root(), who)
    return runtime


def make_proposal(
    runtime,
    creator=ALICE,
    kind=ProposalKind.PUBLIC,
    account_list=(),
    start=None,
    end=None,
    data=b"ipfs://proposal",
) -> int:
    start = runtime.current_block if start is None else start
    end = start + 200 if end is None else end
    return runtime.create_proposal(
        Origin.signed(creator), data, kind, list(account_list), start, end
    )


# ══════════════════════════════════════════════════════════════════════
#  VOTER REGISTRY
# ══════════════════════════════════════════════════════════════════════


class TestVoterRegistry:
    """Registration and unregistration."""

    def test_register_and_lookup(self):
        registry = VoterRegistry()
        assert registry.register(ALICE) is True
        assert registry.is_registered(ALICE)
        assert ALICE in registry
        assert not registry.is_registered(BOB)
        assert len(registry) == 1

    def test_register_is_idempotent(self):
        registry = VoterRegistry()
        registry.register(ALICE)
        assert registry.register(ALICE) is False
        assert len(registry) == 1

    def test_unregister(self):
        registry = VoterRegistry()
        registry.register(ALICE)
        registry.unregister(ALICE)
        assert not registry.is_registered(ALICE)

    def test_unregister_absent_raises(self):
        registry = VoterRegistry()
        with pytest.raises(NotRegistered):
            registry.unregister(ALICE)

    def test_register_empty_account_raises(self):
        with pytest.raises(ValueError):
            VoterRegistry().register("")

    def test_to_dict_sorted(self):
        registry = VoterRegistry()
        registry.register(BOB)
        registry.register(ALICE)
        assert registry.to_dict() == {"voters": [ALICE, BOB], "count": 2}


class TestRegistrationOrigins:
    """Who may register and unregister through the runtime."""

    def test_root_registers_anyone(self):
        runtime = make_runtime(voters=())
        assert runtime.register_voter(Origin.root(), ALICE) is True
        assert runtime.is_registered(ALICE)
        assert isinstance(runtime.events[-1], VoterRegistered)

    def test_account_registers_itself(self):
        runtime = make_runtime(voters=())
        runtime.register_voter(Origin.signed(ALICE), ALICE)
        assert runtime.is_registered(ALICE)

    def test_account_cannot_register_other(self):
        runtime = make_runtime(voters=())
        with pytest.raises(Unauthorized):
            runtime.register_voter(Origin.signed(ALICE), BOB)
        assert not runtime.is_registered(BOB)

    def test_reregister_emits_nothing(self):
        runtime = make_runtime(voters=(ALICE,))
        before = len(runtime.events)
        assert runtime.register_voter(Origin.root(), ALICE) is False
        assert len(runtime.events) == before

    def test_unregister_by_self_or_root(self):
        runtime = make_runtime()
        runtime.unregister_voter(Origin.signed(ALICE), ALICE)
        runtime.unregister_voter(Origin.root(), BOB)
        assert not runtime.is_registered(ALICE)
        assert not runtime.is_registered(BOB)
        assert isinstance(runtime.events[-1], VoterUnregistered)

    def test_unregister_other_is_unauthorized(self):
        runtime = make_runtime()
        with pytest.raises(Unauthorized):
            runtime.unregister_voter(Origin.signed(BOB), ALICE)
        assert runtime.is_registered(ALICE)

    def test_unregister_absent_is_not_registered(self):
        runtime = make_runtime(voters=())
        with pytest.raises(NotRegistered):
            runtime.unregister_voter(Origin.root(), ALICE)

    def test_unregister_needs_no_balance(self):
        runtime = make_runtime(balances={})
        assert runtime.funds.spendable(ALICE) == 0
        runtime.unregister_voter(Origin.signed(ALICE), ALICE)

    def test_unregister_keeps_proposals(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        runtime.unregister_voter(Origin.signed(ALICE), ALICE)
        assert runtime.proposal(pid) is not None
        with pytest.raises(NotRegistered):
            make_proposal(runtime)


# ══════════════════════════════════════════════════════════════════════
#  BOUNDED COLLECTIONS & TALLY
# ══════════════════════════════════════════════════════════════════════


class TestBoundedCollections:

    def test_bytes_within_capacity(self):
        data = BoundedBytes(b"x" * 4, capacity=4)
        assert data == b"xxxx"
        assert data.capacity == 4

    def test_bytes_from_str(self):
        assert BoundedBytes("cid", capacity=3) == b"cid"

    def test_bytes_over_capacity(self):
        with pytest.raises(OffchainDataTooLarge):
            BoundedBytes(b"x" * 5, capacity=4)

    def test_account_list_dedupes_in_order(self):
        accounts = BoundedAccountList([BOB, ALICE, BOB], capacity=2)
        assert list(accounts) == [BOB, ALICE]
        assert ALICE in accounts
        assert EVE not in accounts

    def test_account_list_over_capacity(self):
        with pytest.raises(ListTooLarge):
            BoundedAccountList([ALICE, BOB, CHARLIE], capacity=2)

    def test_account_list_rejects_bare_string(self):
        with pytest.raises(TypeError):
            BoundedAccountList(EVE, capacity=10)

    def test_create_with_bare_string_list(self):
        runtime = make_runtime()
        with pytest.raises(TypeError):
            runtime.create_proposal(
                Origin.signed(ALICE), b"", ProposalKind.PUBLIC, EVE, 10, 200
            )
        assert len(runtime.store) == 0

    def test_account_list_none_is_empty(self):
        assert len(BoundedAccountList(None, capacity=0)) == 0


class TestTally:

    def test_add_aye_and_nay(self):
        tally = Tally()
        tally.add(True, 4)
        tally.add(False, 16)
        assert tally.ratio == (4, 20)
        assert not tally.has_majority

    def test_remove_restores(self):
        tally = Tally(9, 13)
        tally.remove(False, 4)
        assert tally.ratio == (9, 9)
        assert tally.has_majority

    def test_exact_half_is_not_majority(self):
        assert not Tally(5, 10).has_majority
        assert Tally(6, 11).has_majority

    def test_empty_tally_has_no_majority(self):
        assert not Tally().has_majority

    def test_addition_saturates(self):
        tally = Tally(BALANCE_MAX - 1, BALANCE_MAX - 1)
        tally.add(True, 10)
        assert tally.ratio == (BALANCE_MAX, BALANCE_MAX)

    def test_total_underflow_is_defect(self):
        with pytest.raises(Defect):
            Tally(0, 3).remove(False, 4)

    def test_aye_underflow_is_defect(self):
        tally = Tally(1, 10)
        with pytest.raises(Defect):
            tally.remove(True, 4)
        assert tally.ratio == (1, 10)


# ══════════════════════════════════════════════════════════════════════
#  LIFECYCLE
# ══════════════════════════════════════════════════════════════════════


class TestBlockClock:

    def test_set_and_advance(self):
        clock = BlockClock(5)
        assert clock.current_block == 5
        clock.set_block_number(10)
        assert clock.advance(3) == 13

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            BlockClock(-1)
        with pytest.raises(ValueError):
            BlockClock().advance(-1)


class TestLifecycleDerivation:

    def test_boundaries(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10, end=200)
        proposal = runtime.proposal(pid)
        status_of = ProposalLifecycleClock.status_of
        assert status_of(proposal, 9) == ProposalStatus.PENDING
        assert status_of(proposal, 10) == ProposalStatus.ACTIVE
        assert status_of(proposal, 200) == ProposalStatus.ACTIVE
        assert status_of(proposal, 201) == ProposalStatus.ENDED

    def test_closed_is_sticky(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10, end=200)
        proposal = runtime.proposal(pid)
        proposal.status = ProposalStatus.CLOSED
        for block in (1, 50, 500):
            assert ProposalLifecycleClock.status_of(proposal, block) == ProposalStatus.CLOSED

    def test_runtime_reads_status_from_clock(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10, end=200)
        assert runtime.status_of(pid) == ProposalStatus.PENDING
        runtime.clock.set_block_number(10)
        assert runtime.status_of(pid) == ProposalStatus.ACTIVE
        runtime.clock.set_block_number(201)
        assert runtime.status_of(pid) == ProposalStatus.ENDED
        assert runtime.proposal(pid).status == ProposalStatus.PENDING


# ══════════════════════════════════════════════════════════════════════
#  ACCOUNT LIST POLICY
# ══════════════════════════════════════════════════════════════════════


class TestAccountListPolicy:

    def test_public_list_is_ban_list(self):
        runtime = make_runtime()
        proposal = runtime.proposal(make_proposal(runtime, account_list=[EVE]))
        assert AccountListPolicy.is_permitted(proposal, ALICE)
        assert not AccountListPolicy.is_permitted(proposal, EVE)

    def test_private_list_is_allow_list(self):
        runtime = make_runtime()
        proposal = runtime.proposal(
            make_proposal(runtime, kind=ProposalKind.PRIVATE, account_list=[ALICE])
        )
        assert AccountListPolicy.is_permitted(proposal, ALICE)
        assert not AccountListPolicy.is_permitted(proposal, BOB)

    def test_private_empty_list_permits_nobody(self):
        runtime = make_runtime()
        proposal = runtime.proposal(make_proposal(runtime, kind=ProposalKind.PRIVATE))
        assert not AccountListPolicy.is_permitted(proposal, ALICE)

    def test_set_list_while_pending(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, kind=ProposalKind.PRIVATE, account_list=[ALICE], start=10)
        runtime.set_account_list(Origin.signed(ALICE), pid, [ALICE, CHARLIE])
        proposal = runtime.proposal(pid)
        assert list(proposal.account_list) == [ALICE, CHARLIE]
        event = last_event_of(runtime.events, AccountListSet)
        assert event.account_list == (ALICE, CHARLIE)

    def test_set_list_by_root(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        runtime.set_account_list(Origin.root(), pid, [EVE])
        assert EVE in runtime.proposal(pid).account_list

    def test_set_list_by_other_is_unauthorized(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        with pytest.raises(Unauthorized):
            runtime.set_account_list(Origin.signed(BOB), pid, [EVE])

    def test_set_list_after_start_raises(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        runtime.clock.set_block_number(10)
        with pytest.raises(AlreadyStarted):
            runtime.set_account_list(Origin.signed(ALICE), pid, [EVE])
        assert len(runtime.proposal(pid).account_list) == 0

    def test_set_list_too_large(self):
        runtime = make_runtime(account_size_limit=2)
        pid = make_proposal(runtime, start=10)
        with pytest.raises(ListTooLarge):
            runtime.set_account_list(Origin.signed(ALICE), pid, [ALICE, BOB, EVE])

    def test_set_list_missing_proposal(self):
        runtime = make_runtime()
        with pytest.raises(ProposalNotFound):
            runtime.set_account_list(Origin.root(), 42, [EVE])

    def test_kind_is_fixed_after_creation(self):
        # No call changes a proposal's kind; only the list contents move.
        runtime = make_runtime()
        pid = make_proposal(runtime, kind=ProposalKind.PUBLIC, start=10)
        runtime.set_account_list(Origin.signed(ALICE), pid, [BOB])
        assert runtime.proposal(pid).kind == ProposalKind.PUBLIC
        assert not hasattr(runtime, "set_proposal_kind")


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL CREATION
# ══════════════════════════════════════════════════════════════════════


class TestProposalCreation:
    """Scheduling and size constraints, clock at block 10."""

    def test_create_basic(self):
        runtime = make_runtime(block=10)
        pid = make_proposal(runtime, account_list=[EVE], start=20, end=120)
        proposal = runtime.proposal(pid)
        assert pid == 0
        assert proposal.creator == ALICE
        assert proposal.kind == ProposalKind.PUBLIC
        assert proposal.status == ProposalStatus.PENDING
        assert proposal.tally.ratio == (0, 0)
        assert proposal.offchain_data == b"ipfs://proposal"
        event = last_event_of(runtime.events, ProposalCreated)
        assert event.proposal_id == pid
        assert event.account_list == (EVE,)
        assert event.kind == "PUBLIC"

    def test_ids_are_monotonic(self):
        runtime = make_runtime(block=10)
        ids = [make_proposal(runtime, start=20) for _ in range(3)]
        assert ids == [0, 1, 2]
        runtime.cancel_proposal(Origin.signed(ALICE), 2)
        assert make_proposal(runtime, start=20) == 3

    def test_start_at_current_block_is_allowed(self):
        runtime = make_runtime(block=10)
        pid = make_proposal(runtime, start=10, end=110)
        assert runtime.status_of(pid) == ProposalStatus.ACTIVE

    def test_start_one_block_in_past(self):
        runtime = make_runtime(block=10)
        with pytest.raises(StartInPast):
            make_proposal(runtime, start=9, end=150)

    def test_end_equal_to_start(self):
        runtime = make_runtime(block=10)
        with pytest.raises(EndBeforeStart):
            make_proposal(runtime, start=20, end=20)

    def test_end_before_start(self):
        runtime = make_runtime(block=10)
        with pytest.raises(EndBeforeStart):
            make_proposal(runtime, start=20, end=5)

    def test_duration_at_maximum(self):
        runtime = make_runtime(block=10)
        make_proposal(runtime, start=10, end=1010)

    def test_duration_too_long(self):
        runtime = make_runtime(block=10)
        with pytest.raises(DurationTooLong):
            make_proposal(runtime, start=10, end=1011)

    def test_duration_at_minimum(self):
        runtime = make_runtime(block=10)
        make_proposal(runtime, start=10, end=110)

    def test_duration_too_short(self):
        runtime = make_runtime(block=10)
        with pytest.raises(DurationTooShort):
            make_proposal(runtime, start=10, end=109)

    def test_start_at_delay_limit(self):
        runtime = make_runtime(block=10)
        make_proposal(runtime, start=110, end=300)

    def test_start_too_far_in_future(self):
        runtime = make_runtime(block=10)
        with pytest.raises(StartTooFarInFuture):
            make_proposal(runtime, start=111, end=300)

    def test_offchain_data_at_limit(self):
        runtime = make_runtime(block=10)
        make_proposal(runtime, data=b"x" * 150)

    def test_offchain_data_too_large(self):
        runtime = make_runtime(block=10)
        with pytest.raises(OffchainDataTooLarge):
            make_proposal(runtime, data=b"x" * 151)

    def test_account_list_too_large(self):
        runtime = make_runtime(block=10, account_size_limit=2)
        with pytest.raises(ListTooLarge):
            make_proposal(runtime, account_list=[ALICE, BOB, EVE])

    def test_creator_must_be_registered(self):
        runtime = make_runtime(block=10)
        with pytest.raises(NotRegistered):
            make_proposal(runtime, creator=EVE)

    def test_root_cannot_create(self):
        runtime = make_runtime(block=10)
        with pytest.raises(Unauthorized):
            runtime.create_proposal(Origin.root(), b"", ProposalKind.PUBLIC, [], 10, 200)

    def test_failed_creation_leaves_no_trace(self):
        runtime = make_runtime(block=10)
        events = len(runtime.events)
        with pytest.raises(DurationTooShort):
            make_proposal(runtime, start=10, end=11)
        assert len(runtime.store) == 0
        assert runtime.store.next_proposal_id == 0
        assert len(runtime.events) == events

    def test_store_used_directly(self):
        registry = VoterRegistry()
        registry.register(ALICE)
        store = ProposalStore(registry, GovernanceConfig(minimum_duration=1))
        pid = store.create_proposal(ALICE, b"", ProposalKind.PRIVATE, [BOB], 5, 6, 5)
        assert pid in store
        assert store.ids() == [pid]
        assert store.to_dict()["proposals"][pid]["kind"] == "PRIVATE"


# ══════════════════════════════════════════════════════════════════════
#  CANCEL
# ══════════════════════════════════════════════════════════════════════


class TestCancelProposal:

    def test_cancel_before_start(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10, end=200)
        runtime.clock.set_block_number(9)
        runtime.cancel_proposal(Origin.signed(ALICE), pid)
        assert runtime.proposal(pid) is None
        assert last_event_of(runtime.events, ProposalCancelled).proposal_id == pid

    def test_cancel_at_start_block_fails(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10, end=200)
        runtime.clock.set_block_number(10)
        with pytest.raises(AlreadyStarted):
            runtime.cancel_proposal(Origin.signed(ALICE), pid)
        assert runtime.proposal(pid) is not None

    def test_cancel_after_start_fails(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(100)
        with pytest.raises(AlreadyStarted):
            runtime.cancel_proposal(Origin.signed(ALICE), pid)

    def test_cancel_by_other_is_unauthorized(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        with pytest.raises(Unauthorized):
            runtime.cancel_proposal(Origin.signed(BOB), pid)

    def test_cancel_by_root(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        runtime.cancel_proposal(Origin.root(), pid)
        assert pid not in runtime.store

    def test_cancel_missing(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10)
        with pytest.raises(ProposalNotFound):
            runtime.cancel_proposal(Origin.signed(ALICE), pid + 1)


# ══════════════════════════════════════════════════════════════════════
#  CLOSE
# ══════════════════════════════════════════════════════════════════════


class TestCloseProposal:

    def test_close_after_end(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(201)
        assert runtime.close_proposal(Origin.signed(ALICE), pid) is False
        assert runtime.proposal(pid).status == ProposalStatus.CLOSED
        event = last_event_of(runtime.events, ProposalClosed)
        assert event.ratio == (0, 0)
        assert event.approved is False
        assert event.auto is False

    def test_close_at_end_block_fails(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(200)
        with pytest.raises(NotEnded):
            runtime.close_proposal(Origin.signed(ALICE), pid)

    def test_close_while_pending_fails(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=10, end=200)
        with pytest.raises(NotEnded):
            runtime.close_proposal(Origin.signed(ALICE), pid)
        assert runtime.proposal(pid).status == ProposalStatus.PENDING

    def test_close_by_root(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(500)
        runtime.close_proposal(Origin.root(), pid)
        assert runtime.status_of(pid) == ProposalStatus.CLOSED

    def test_close_by_other_is_unauthorized(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(201)
        with pytest.raises(Unauthorized):
            runtime.close_proposal(Origin.signed(BOB), pid)

    def test_close_missing(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(201)
        with pytest.raises(ProposalNotFound):
            runtime.close_proposal(Origin.signed(ALICE), pid + 1)

    def test_close_twice_is_noop(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(201)
        first = runtime.close_proposal(Origin.signed(ALICE), pid)
        events = len(runtime.events)
        assert runtime.close_proposal(Origin.signed(ALICE), pid) == first
        assert len(runtime.events) == events

    def test_close_needs_no_balance(self):
        runtime = make_runtime(balances={})
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(201)
        runtime.close_proposal(Origin.signed(ALICE), pid)
        assert runtime.funds.balance_of(ALICE) == 0

    def test_cannot_cancel_closed(self):
        runtime = make_runtime()
        pid = make_proposal(runtime, start=1, end=200)
        runtime.clock.set_block_number(201)
        runtime.close_proposal(Origin.signed(ALICE), pid)
        with pytest.raises(AlreadyStarted):
            runtime.cancel_proposal(Origin.signed(ALICE), pid)
