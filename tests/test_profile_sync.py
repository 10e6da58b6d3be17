"""
Tests for auth-to-profile synchronization.
"""

import threading

import pytest

from src.auth.auth_stream import Identity, InMemoryAuthStream
from src.profile_sync.models import ProfileRecord, Role, SyncPhase, SyncState
from src.profile_sync.profile_sync import ProfileSync
from src.storage.document_store import DocumentSnapshot, DocumentStoreError, InMemoryDocumentStore
from src.utils.config_loader import ProfileSyncConfig


ALICE = Identity(uid="u-alice", display_name="Alice", email="alice@example.com")
BOB = Identity(uid="u-bob", display_name="Bob", email="bob@example.com")


def _snapshot(doc_id: str, data: dict) -> DocumentSnapshot:
    return DocumentSnapshot(doc_id=doc_id, exists=True, data=data)


class FakeTimer:
    """Timer stand-in that only fires when told to."""

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args)


class PendingDocumentStore(InMemoryDocumentStore):
    """Store whose subscriptions deliver nothing until the test says so."""

    def __init__(self) -> None:
        super().__init__()
        self.pending: dict[str, tuple] = {}
        self.unsubscribed: list[str] = []

    def subscribe(self, collection, doc_id, on_data, on_error):
        self.pending[doc_id] = (on_data, on_error)

        def unsubscribe() -> None:
            self.unsubscribed.append(doc_id)

        return unsubscribe


@pytest.fixture
def auth() -> InMemoryAuthStream:
    return InMemoryAuthStream()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def states() -> list:
    return []


@pytest.fixture
def sync(auth: InMemoryAuthStream, store: InMemoryDocumentStore, states: list):
    profile_sync = ProfileSync(auth, store)
    profile_sync.subscribe(states.append)
    profile_sync.start()
    yield profile_sync
    profile_sync.teardown()


class TestModels:
    """Tests for roles and profile records."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("customer", Role.CUSTOMER),
            ("Super_Admin", Role.SUPER_ADMIN),
            ("rider", Role.RIDER_DRIVER),
            ("driver", Role.RIDER_DRIVER),
            ("sub_station", Role.SUB_STATION_MANAGER),
            ("astronaut", Role.UNKNOWN),
            (None, Role.UNKNOWN),
            (42, Role.UNKNOWN),
        ],
    )
    def test_role_parse(self, raw, expected: Role) -> None:
        """Test stored role strings map onto the closed role set."""
        assert Role.parse(raw) == expected

    def test_profile_from_document(self) -> None:
        """Test document fields are mapped and extras kept."""
        profile = ProfileRecord.from_document(
            {
                "role": "manager",
                "stationId": "st-1",
                "stationName": "Hlaing",
                "displayName": "Alice",
                "authorityLevel": 3,
            }
        )

        assert profile.role == Role.MANAGER
        assert profile.raw_role == "manager"
        assert profile.station_id == "st-1"
        assert profile.station_name == "Hlaing"
        assert profile.display_name == "Alice"
        assert profile.extra == {"authorityLevel": 3}

    def test_default_profile(self) -> None:
        """Test default profile copies identity details."""
        profile = ProfileRecord.default_for(ALICE)

        assert profile.role == Role.CUSTOMER
        assert profile.display_name == "Alice"
        assert profile.email == "alice@example.com"

    def test_sync_state_roles(self) -> None:
        """Test role helpers on SyncState."""
        state = SyncState(
            identity=ALICE,
            profile=ProfileRecord(role=Role.MANAGER),
            loading=False,
            phase=SyncPhase.READY,
        )

        assert state.role == Role.MANAGER
        assert state.has_role(Role.SUPER_ADMIN, Role.MANAGER)
        assert not state.has_role(Role.CUSTOMER)
        assert SyncState.logged_out().role is None
        assert not SyncState.logged_out().has_role(Role.CUSTOMER)


class TestProfileSyncTransitions:
    """Tests for the sync state machine."""

    def test_initial_state_before_start(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
    ) -> None:
        """Test nothing is known before the auth stream reports."""
        profile_sync = ProfileSync(auth, store)

        assert profile_sync.state.phase == SyncPhase.LOGGED_OUT
        assert profile_sync.state.loading is True
        assert not profile_sync.is_active

    def test_no_identity(self, sync: ProfileSync) -> None:
        """Test a null identity settles as logged out."""
        assert sync.state == SyncState.logged_out()
        assert sync.state.loading is False
        assert sync.is_active

    def test_sign_in_with_profile(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
        states: list,
    ) -> None:
        """Test identity with a stored profile loads then becomes ready."""
        store.set("users", ALICE.uid, {"role": "manager", "stationId": "st-1"})

        auth.sign_in(ALICE)

        phases = [s.phase for s in states]
        assert phases[-2:] == [SyncPhase.LOADING_PROFILE, SyncPhase.READY]
        assert states[-2].loading is True
        assert states[-2].identity == ALICE
        assert states[-2].profile is None

        state = sync.state
        assert state.identity == ALICE
        assert state.loading is False
        assert state.profile.role == Role.MANAGER
        assert state.profile.station_id == "st-1"

    def test_missing_profile_defaults_to_customer(
        self,
        auth: InMemoryAuthStream,
        sync: ProfileSync,
    ) -> None:
        """Test a missing document yields the default profile."""
        auth.sign_in(ALICE)

        state = sync.state
        assert state.phase == SyncPhase.DEFAULTED_PROFILE
        assert state.loading is False
        assert state.profile.role == Role.CUSTOMER
        assert state.profile.display_name == "Alice"
        assert state.profile.email == "alice@example.com"

    def test_unknown_role_is_kept_as_unknown(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test an unrecognized stored role does not become the default."""
        store.set("users", ALICE.uid, {"role": "astronaut"})

        auth.sign_in(ALICE)

        assert sync.state.phase == SyncPhase.READY
        assert sync.state.profile.role == Role.UNKNOWN
        assert sync.state.profile.raw_role == "astronaut"

    def test_sign_out(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test sign-out clears the profile and closes the subscription."""
        store.set("users", ALICE.uid, {"role": "customer"})
        auth.sign_in(ALICE)
        assert store.subscriber_count("users", ALICE.uid) == 1

        auth.sign_out()

        assert sync.state == SyncState.logged_out()
        assert store.subscriber_count("users", ALICE.uid) == 0

    def test_update_in_place_has_no_loading_flash(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
        states: list,
    ) -> None:
        """Test a document change replaces the profile directly."""
        store.set("users", ALICE.uid, {"role": "customer"})
        auth.sign_in(ALICE)
        seen = len(states)

        store.set("users", ALICE.uid, {"role": "merchant"})

        new_states = states[seen:]
        assert len(new_states) == 1
        assert new_states[0].phase == SyncPhase.READY
        assert new_states[0].loading is False
        assert sync.state.profile.role == Role.MERCHANT

    def test_document_deleted_falls_back_to_default(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test deleting the document while ready substitutes the default."""
        store.set("users", ALICE.uid, {"role": "warehouse"})
        auth.sign_in(ALICE)

        store.delete("users", ALICE.uid)

        assert sync.state.phase == SyncPhase.DEFAULTED_PROFILE
        assert sync.state.profile.role == Role.CUSTOMER

    def test_document_created_after_default(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test a profile written after sign-in replaces the default."""
        auth.sign_in(ALICE)
        assert sync.state.phase == SyncPhase.DEFAULTED_PROFILE

        store.set("users", ALICE.uid, {"role": "vendor"})

        assert sync.state.phase == SyncPhase.READY
        assert sync.state.profile.role == Role.VENDOR


class TestProfileSyncSwitching:
    """Tests for identity switches and stale deliveries."""

    def test_switch_closes_old_subscription(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
        states: list,
    ) -> None:
        """Test switching identity drops the old profile stream."""
        store.set("users", ALICE.uid, {"role": "manager"})
        store.set("users", BOB.uid, {"role": "rider_driver"})
        auth.sign_in(ALICE)

        auth.sign_in(BOB)

        assert store.subscriber_count("users", ALICE.uid) == 0
        assert store.subscriber_count("users", BOB.uid) == 1
        assert sync.state.identity == BOB
        assert sync.state.profile.role == Role.RIDER_DRIVER

        seen = len(states)
        store.set("users", ALICE.uid, {"role": "super_admin"})

        assert len(states) == seen
        assert sync.state.profile.role == Role.RIDER_DRIVER

    def test_profile_always_matches_identity(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
        states: list,
    ) -> None:
        """Test no published state pairs one identity with another's profile."""
        store.set("users", ALICE.uid, {"role": "manager", "displayName": "Alice"})
        store.set("users", BOB.uid, {"role": "customer", "displayName": "Bob"})

        auth.sign_in(ALICE)
        auth.sign_in(BOB)
        auth.sign_in(ALICE)
        auth.sign_out()
        auth.sign_in(BOB)

        for state in states:
            if state.profile is not None:
                assert state.profile.display_name == state.identity.display_name

    def test_stale_snapshot_dropped(self, auth: InMemoryAuthStream, states: list) -> None:
        """Test a late delivery for a previous identity is ignored."""
        store = PendingDocumentStore()
        profile_sync = ProfileSync(auth, store)
        profile_sync.subscribe(states.append)
        profile_sync.start()

        auth.sign_in(ALICE)
        alice_on_data, alice_on_error = store.pending[ALICE.uid]
        auth.sign_in(BOB)

        assert ALICE.uid in store.unsubscribed
        seen = len(states)

        alice_on_data(_snapshot(ALICE.uid, {"role": "super_admin"}))
        alice_on_error(DocumentStoreError("late failure"))

        assert len(states) == seen
        assert profile_sync.state.identity == BOB
        assert profile_sync.state.phase == SyncPhase.LOADING_PROFILE
        profile_sync.teardown()


class TestProfileSyncErrors:
    """Tests for profile read failures."""

    def test_permission_denied_defaults(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test an unreadable profile resolves to the default."""
        store.deny("users", ALICE.uid)

        auth.sign_in(ALICE)

        assert sync.state.phase == SyncPhase.DEFAULTED_PROFILE
        assert sync.state.loading is False
        assert sync.state.profile.role == Role.CUSTOMER

    def test_error_after_ready_replaces_profile(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test a stream error after load substitutes the default."""
        store.set("users", ALICE.uid, {"role": "manager"})
        auth.sign_in(ALICE)

        store.fail_subscribers("users", ALICE.uid, DocumentStoreError("network down"))

        assert sync.state.phase == SyncPhase.DEFAULTED_PROFILE
        assert sync.state.profile.role == Role.CUSTOMER

    def test_error_after_ready_retains_profile(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
    ) -> None:
        """Test the retain option keeps a loaded profile on a later error."""
        config = ProfileSyncConfig(retain_profile_on_error=True)
        profile_sync = ProfileSync(auth, store, config).start()
        store.set("users", ALICE.uid, {"role": "manager"})
        auth.sign_in(ALICE)

        store.fail_subscribers("users", ALICE.uid, DocumentStoreError("network down"))

        assert profile_sync.state.phase == SyncPhase.READY
        assert profile_sync.state.profile.role == Role.MANAGER
        profile_sync.teardown()

    def test_listener_sees_no_exception(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test read errors never propagate to the auth stream."""
        store.deny("users", BOB.uid)

        auth.sign_in(BOB)
        auth.sign_out()

        assert sync.state == SyncState.logged_out()

    def test_failing_listener_does_not_stall_load(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
    ) -> None:
        """Test a listener that raises does not interrupt the transition."""
        profile_sync = ProfileSync(auth, store)
        seen: list = []

        def flaky_listener(state: SyncState) -> None:
            if state.phase == SyncPhase.LOADING_PROFILE and not seen:
                seen.append(state)
                raise RuntimeError("listener bug")

        profile_sync.subscribe(flaky_listener)
        profile_sync.start()

        auth.sign_in(ALICE)

        assert store.subscriber_count("users", ALICE.uid) == 1
        assert profile_sync.state.phase == SyncPhase.DEFAULTED_PROFILE

        store.set("users", ALICE.uid, {"role": "manager"})

        assert profile_sync.state.phase == SyncPhase.READY
        assert profile_sync.state.profile.role == Role.MANAGER
        profile_sync.teardown()

    def test_failing_listener_does_not_block_others(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
        states: list,
    ) -> None:
        """Test later listeners still receive the state."""
        def broken(state: SyncState) -> None:
            raise ValueError("boom")

        sync.subscribe(broken)
        other_states: list = []
        sync.subscribe(other_states.append)

        store.set("users", ALICE.uid, {"role": "vendor"})
        auth.sign_in(ALICE)

        assert other_states[-1].phase == SyncPhase.READY
        assert states[-1].profile.role == Role.VENDOR


class TestProfileSyncConcurrency:
    """Tests for writes racing on the profile document."""

    def test_concurrent_writes_end_on_latest(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
    ) -> None:
        """Test the synced profile matches the stored one after racing writers."""
        auth.sign_in(ALICE)
        first_delivered = threading.Event()
        release = threading.Event()

        def slow_listener(state: SyncState) -> None:
            if state.role == Role.MANAGER:
                first_delivered.set()
                release.wait(timeout=5)

        sync.subscribe(slow_listener)

        writer_a = threading.Thread(
            target=store.set, args=("users", ALICE.uid, {"role": "manager"})
        )
        writer_a.start()
        assert first_delivered.wait(timeout=5)

        writer_b = threading.Thread(
            target=store.set, args=("users", ALICE.uid, {"role": "super_admin"})
        )
        writer_b.start()
        writer_b.join(timeout=0.2)
        release.set()
        writer_a.join(timeout=5)
        writer_b.join(timeout=5)

        assert store.get("users", ALICE.uid).data["role"] == "super_admin"
        assert sync.state.profile.role == Role.SUPER_ADMIN


class TestProfileSyncTimeout:
    """Tests for the optional load timeout."""

    @pytest.fixture
    def timers(self) -> list:
        return []

    @pytest.fixture
    def pending_sync(self, auth: InMemoryAuthStream, timers: list):
        def timer_factory(interval, function, args=None):
            timer = FakeTimer(interval, function, args)
            timers.append(timer)
            return timer

        store = PendingDocumentStore()
        config = ProfileSyncConfig(load_timeout_seconds=5)
        profile_sync = ProfileSync(auth, store, config, timer_factory=timer_factory).start()
        yield profile_sync, store
        profile_sync.teardown()

    def test_timeout_publishes_default(
        self,
        auth: InMemoryAuthStream,
        pending_sync,
        timers: list,
    ) -> None:
        """Test a stuck read falls back to the default after the timeout."""
        profile_sync, _ = pending_sync
        auth.sign_in(ALICE)

        assert profile_sync.state.phase == SyncPhase.LOADING_PROFILE
        assert len(timers) == 1
        assert timers[0].interval == 5
        assert timers[0].started

        timers[0].fire()

        assert profile_sync.state.phase == SyncPhase.DEFAULTED_PROFILE
        assert profile_sync.state.profile.role == Role.CUSTOMER

    def test_late_profile_replaces_timeout_default(
        self,
        auth: InMemoryAuthStream,
        pending_sync,
        timers: list,
    ) -> None:
        """Test the real profile still lands after a timeout."""
        profile_sync, store = pending_sync
        auth.sign_in(ALICE)
        timers[0].fire()

        on_data, _ = store.pending[ALICE.uid]
        on_data(_snapshot(ALICE.uid, {"role": "accountant"}))

        assert profile_sync.state.phase == SyncPhase.READY
        assert profile_sync.state.profile.role == Role.ACCOUNTANT

    def test_timer_cancelled_on_load(
        self,
        auth: InMemoryAuthStream,
        pending_sync,
        timers: list,
    ) -> None:
        """Test the timer is cancelled once the profile arrives."""
        profile_sync, store = pending_sync
        auth.sign_in(ALICE)

        on_data, _ = store.pending[ALICE.uid]
        on_data(_snapshot(ALICE.uid, {"role": "supervisor"}))

        assert timers[0].cancelled
        timers[0].fire()
        assert profile_sync.state.profile.role == Role.SUPERVISOR

    def test_stale_timer_ignored(
        self,
        auth: InMemoryAuthStream,
        pending_sync,
        timers: list,
    ) -> None:
        """Test a timer for a previous identity does nothing."""
        profile_sync, _ = pending_sync
        auth.sign_in(ALICE)
        auth.sign_in(BOB)

        timers[0].fire()

        assert profile_sync.state.identity == BOB
        assert profile_sync.state.phase == SyncPhase.LOADING_PROFILE


class TestProfileSyncLifecycle:
    """Tests for subscribe, start and teardown."""

    def test_subscribe_replays_current_state(self, sync: ProfileSync) -> None:
        """Test new listeners get the current state immediately."""
        received = []
        sync.subscribe(received.append)
        assert received == [sync.state]

    def test_unsubscribe_listener(
        self,
        auth: InMemoryAuthStream,
        sync: ProfileSync,
    ) -> None:
        """Test a removed listener gets nothing further."""
        received = []
        unsubscribe = sync.subscribe(received.append)
        unsubscribe()

        auth.sign_in(ALICE)

        assert len(received) == 1

    def test_teardown_stops_everything(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
        sync: ProfileSync,
        states: list,
    ) -> None:
        """Test teardown releases subscriptions and stops publishing."""
        store.set("users", ALICE.uid, {"role": "manager"})
        auth.sign_in(ALICE)
        final_state = sync.state

        sync.teardown()
        seen = len(states)

        assert auth.listener_count == 0
        assert store.subscriber_count("users", ALICE.uid) == 0
        assert not sync.is_active

        store.set("users", ALICE.uid, {"role": "customer"})
        auth.sign_in(BOB)

        assert len(states) == seen
        assert sync.state == final_state

    def test_teardown_is_idempotent(self, sync: ProfileSync) -> None:
        """Test teardown can be called twice."""
        sync.teardown()
        sync.teardown()
        assert not sync.is_active

    def test_start_after_teardown_raises(self, sync: ProfileSync) -> None:
        """Test a torn-down sync cannot be restarted."""
        sync.teardown()
        with pytest.raises(RuntimeError):
            sync.start()

    def test_context_manager(
        self,
        auth: InMemoryAuthStream,
        store: InMemoryDocumentStore,
    ) -> None:
        """Test the context manager starts and tears down."""
        with ProfileSync(auth, store) as profile_sync:
            assert profile_sync.is_active
            assert auth.listener_count == 1

        assert auth.listener_count == 0

    def test_custom_collection_and_default_role(self, auth: InMemoryAuthStream) -> None:
        """Test configured collection and default role are used."""
        store = InMemoryDocumentStore()
        store.set("profiles", ALICE.uid, {"role": "manager"})
        config = ProfileSyncConfig(users_collection="profiles", default_role="merchant")

        with ProfileSync(auth, store, config) as profile_sync:
            auth.sign_in(ALICE)
            assert profile_sync.state.profile.role == Role.MANAGER

            auth.sign_in(BOB)
            assert profile_sync.state.profile.role == Role.MERCHANT
