"""
Auth-to-profile synchronization.

Watches the authentication stream and, for each signed-in identity, mirrors
that user's profile document into a published SyncState.

State machine:
  LOGGED_OUT       -> LOADING_PROFILE    identity signed in
  LOADING_PROFILE  -> READY              profile document exists
  LOADING_PROFILE  -> DEFAULTED_PROFILE  document missing, read error or load timeout
  READY/DEFAULTED  -> READY/DEFAULTED    document changed (replaced in place, no loading flash)
  any              -> LOGGED_OUT         identity cleared

At most one profile subscription is open. Every identity change bumps a
generation counter; deliveries tagged with an older generation are dropped.
"""

import logging
import threading
from typing import Callable

from src.auth.auth_stream import AuthStream, Identity
from src.profile_sync.models import ProfileRecord, Role, SyncPhase, SyncState
from src.storage.document_store import DocumentSnapshot, DocumentStore
from src.utils.config_loader import ProfileSyncConfig

logger = logging.getLogger(__name__)

StateListener = Callable[[SyncState], None]


class ProfileSync:
    """
    Keeps a SyncState consistent with the auth stream and profile documents.

    Profile read failures never reach the caller: they resolve to a default
    "customer" profile so the application is never blocked on a missing or
    unreadable document.

    Attributes:
        config: Profile sync configuration.
    """

    def __init__(
        self,
        auth_stream: AuthStream,
        document_store: DocumentStore,
        config: ProfileSyncConfig | None = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        """
        Initialize profile sync. Nothing is subscribed until start().

        Args:
            auth_stream: Source of identity changes.
            document_store: Store holding the profile documents.
            config: Collection name, default role and hardening options.
            timer_factory: Factory with threading.Timer's signature, used for
                the optional load timeout.
        """
        self.config = config or ProfileSyncConfig()
        self._auth_stream = auth_stream
        self._document_store = document_store
        self._timer_factory = timer_factory
        self._default_role = Role.parse(self.config.default_role)

        self._lock = threading.RLock()
        self._state = SyncState.logged_out(loading=True)
        self._listeners: dict[int, StateListener] = {}
        self._next_listener_id = 0

        self._generation = 0
        self._auth_unsubscribe: Callable[[], None] | None = None
        self._profile_unsubscribe: Callable[[], None] | None = None
        self._load_timer = None
        self._started = False
        self._torn_down = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self._started and not self._torn_down

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener for state changes.

        The current state is delivered immediately.

        Returns:
            Callable that removes the listener.
        """
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = listener
            if not self._torn_down:
                self._deliver(listener, self._state)

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return unsubscribe

    def start(self) -> "ProfileSync":
        """
        Open the auth subscription.

        Raises:
            RuntimeError: If called after teardown().
        """
        with self._lock:
            if self._torn_down:
                raise RuntimeError("ProfileSync has been torn down")
            if self._started:
                return self
            self._started = True

        logger.debug("Starting profile sync")
        unsubscribe = self._auth_stream.subscribe(self._on_auth_changed)

        with self._lock:
            if self._torn_down:
                unsubscribe()
            else:
                self._auth_unsubscribe = unsubscribe
        return self

    def teardown(self) -> None:
        """
        Release both subscriptions and stop publishing.

        Safe to call more than once. Events arriving afterwards are ignored.
        """
        with self._lock:
            if self._torn_down:
                return
            self._torn_down = True
            self._generation += 1
            self._release_profile_subscription()
            auth_unsubscribe = self._auth_unsubscribe
            self._auth_unsubscribe = None
            self._listeners.clear()

        if auth_unsubscribe is not None:
            auth_unsubscribe()
        logger.debug("Profile sync torn down")

    def __enter__(self) -> "ProfileSync":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.teardown()
        return False

    # ------------------------------------------------------------------
    # Auth stream
    # ------------------------------------------------------------------

    def _on_auth_changed(self, identity: Identity | None) -> None:
        with self._lock:
            if self._torn_down:
                return

            self._release_profile_subscription()
            self._generation += 1
            generation = self._generation

            if identity is None:
                self._publish(SyncState.logged_out())
                return

            logger.info(f"Loading profile for {identity.uid}")
            self._start_load_timer(generation, identity)
            self._publish(
                SyncState(
                    identity=identity,
                    profile=None,
                    loading=True,
                    phase=SyncPhase.LOADING_PROFILE,
                )
            )

        # Subscribed outside our lock: the store calls back into us while holding its delivery lock
        unsubscribe = self._document_store.subscribe(
            self.config.users_collection,
            identity.uid,
            on_data=lambda snapshot: self._on_profile_snapshot(generation, identity, snapshot),
            on_error=lambda error: self._on_profile_error(generation, identity, error),
        )

        with self._lock:
            superseded = self._is_stale(generation)
            if not superseded:
                self._profile_unsubscribe = unsubscribe
        if superseded:
            unsubscribe()

    # ------------------------------------------------------------------
    # Profile document
    # ------------------------------------------------------------------

    def _on_profile_snapshot(
        self,
        generation: int,
        identity: Identity,
        snapshot: DocumentSnapshot,
    ) -> None:
        with self._lock:
            if self._is_stale(generation):
                logger.debug(f"Dropped stale profile snapshot for {identity.uid}")
                return
            self._cancel_load_timer()

            if snapshot.exists:
                self._publish(
                    SyncState(
                        identity=identity,
                        profile=ProfileRecord.from_document(snapshot.data),
                        loading=False,
                        phase=SyncPhase.READY,
                    )
                )
            else:
                logger.info(f"No profile document for {identity.uid}, using default profile")
                self._publish_default(identity)

    def _on_profile_error(self, generation: int, identity: Identity, error: Exception) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            self._cancel_load_timer()
            logger.warning(f"Profile read failed for {identity.uid}: {error}")

            current = self._state
            if (
                self.config.retain_profile_on_error
                and current.phase == SyncPhase.READY
                and current.identity == identity
            ):
                logger.info(f"Keeping cached profile for {identity.uid}")
                return

            self._publish_default(identity)

    # ------------------------------------------------------------------
    # Load timeout
    # ------------------------------------------------------------------

    def _start_load_timer(self, generation: int, identity: Identity) -> None:
        timeout = self.config.load_timeout_seconds
        if not timeout:
            return
        timer = self._timer_factory(timeout, self._on_load_timeout, args=(generation, identity))
        timer.daemon = True
        self._load_timer = timer
        timer.start()

    def _on_load_timeout(self, generation: int, identity: Identity) -> None:
        with self._lock:
            if self._is_stale(generation) or self._state.phase != SyncPhase.LOADING_PROFILE:
                return
            self._load_timer = None
            logger.warning(
                f"Profile for {identity.uid} not loaded after "
                f"{self.config.load_timeout_seconds}s, using default profile"
            )
            self._publish_default(identity)

    def _cancel_load_timer(self) -> None:
        if self._load_timer is not None:
            self._load_timer.cancel()
            self._load_timer = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release_profile_subscription(self) -> None:
        self._cancel_load_timer()
        if self._profile_unsubscribe is not None:
            unsubscribe = self._profile_unsubscribe
            self._profile_unsubscribe = None
            unsubscribe()

    def _is_stale(self, generation: int) -> bool:
        return self._torn_down or generation != self._generation

    def _publish_default(self, identity: Identity) -> None:
        self._publish(
            SyncState(
                identity=identity,
                profile=ProfileRecord.default_for(identity, self._default_role),
                loading=False,
                phase=SyncPhase.DEFAULTED_PROFILE,
            )
        )

    def _publish(self, state: SyncState) -> None:
        if self._torn_down:
            return
        self._state = state
        for listener in list(self._listeners.values()):
            self._deliver(listener, state)

    @staticmethod
    def _deliver(listener: StateListener, state: SyncState) -> None:
        try:
            listener(state)
        except Exception as e:
            logger.exception(f"State listener failed on {state.phase.value}: {e}")
