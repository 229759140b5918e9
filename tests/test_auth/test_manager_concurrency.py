"""Concurrency tests for CredentialSessionManager."""

import threading
import time

from hvclient.auth import (
    AuthenticationToken,
    AuthenticationTokenStatus,
    CredentialSessionManager,
    HmacKeySet,
    SessionSnapshot,
    WebApplicationCredential,
)


class SlowMinter:
    """Holds each mint long enough for racing callers to pile up."""

    def __init__(self, delay: float = 0.05) -> None:
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def mint(self, credential: WebApplicationCredential, keyset: HmacKeySet) -> AuthenticationToken:
        with self._lock:
            self.calls += 1
            number = self.calls
        time.sleep(self.delay)
        return AuthenticationToken(
            application_id=credential.application_id,
            status=AuthenticationTokenStatus.SUCCESS,
            token=f"token-{number}",
        )


def test_racing_callers_mint_once(credential: WebApplicationCredential) -> None:
    minter = SlowMinter()
    manager = CredentialSessionManager(minter)
    barrier = threading.Barrier(8)
    results: list[SessionSnapshot] = []
    results_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        snapshot = manager.get_or_refresh(credential.application_id, credential)
        with results_lock:
            results.append(snapshot)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert minter.calls == 1
    assert len(results) == 8
    assert {snapshot.token for snapshot in results} == {"token-1"}
    assert {snapshot.refresh_counter for snapshot in results} == {1}


def test_racing_expiry_reports_refresh_once(credential: WebApplicationCredential) -> None:
    minter = SlowMinter(delay=0.01)
    manager = CredentialSessionManager(minter)
    first = manager.get_or_refresh(credential.application_id, credential)
    barrier = threading.Barrier(4)
    expired: list[bool] = []
    results_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        outcome = manager.expire_authentication_result(credential.application_id, first.refresh_counter)
        manager.get_or_refresh(credential.application_id, credential)
        with results_lock:
            expired.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(expired) == 4
    # Expiries reported after the refresh carry a stale counter and are ignored.
    assert minter.calls == 2
    assert manager.get_or_refresh(credential.application_id, credential).refresh_counter == 2


def test_refresh_for_one_application_does_not_block_another(rsa_key) -> None:  # noqa: ANN001
    started = threading.Event()
    release = threading.Event()

    class BlockingMinter:
        def mint(self, credential: WebApplicationCredential, keyset: HmacKeySet) -> AuthenticationToken:
            if credential.application_id == "app-a":
                started.set()
                release.wait(5)
            return AuthenticationToken(
                application_id=credential.application_id,
                status=AuthenticationTokenStatus.SUCCESS,
                token=f"{credential.application_id}-token",
            )

    manager = CredentialSessionManager(BlockingMinter())
    credential_a = WebApplicationCredential("app-a", rsa_key, thumbprint="aa")
    credential_b = WebApplicationCredential("app-b", rsa_key, thumbprint="bb")

    blocked = threading.Thread(target=manager.get_or_refresh, args=("app-a", credential_a))
    blocked.start()
    try:
        assert started.wait(5)
        snapshot = manager.get_or_refresh("app-b", credential_b)
        assert snapshot.token == "app-b-token"
    finally:
        release.set()
        blocked.join(timeout=5)

    assert manager.get_or_refresh("app-a", credential_a).token == "app-a-token"
