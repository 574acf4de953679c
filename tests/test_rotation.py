"""Tests for refresh-token rotation and reuse detection."""
import threading
from datetime import timedelta

import pytest

from models import DBStorage
from models.refresh_token import RefreshToken
from tests.conftest import make_user
from tokens import (
    ExpiredTokenError,
    RevokedTokenError,
    SessionMeta,
    TokenError,
    TokenReuseError,
    TokenService,
    UnknownTokenError,
)
from tokens.hasher import hash_token


def _record(service, token):
    return service.store.find_by_hash(hash_token(token))


class TestScenarios:
    def test_a_rotation_links_old_token_to_successor(self, service, user, clock):
        t1 = service.issue(user.id)
        clock.advance(minutes=1)
        t2 = service.rotate(t1.refresh_token, SessionMeta(ip_address="10.0.0.2"))

        assert t2.family_id == t1.family_id
        assert t2.refresh_token != t1.refresh_token
        old, new = _record(service, t1.refresh_token), _record(service, t2.refresh_token)
        assert old.is_used is True
        assert old.used_at == clock()
        assert old.replaced_by == new.id
        assert new.family_id == old.family_id
        assert new.is_used is False
        assert new.ip_address == "10.0.0.2"
        assert service.signer.decode(t2.access_token)["sub"] == user.id

    def test_b_replay_revokes_whole_family(self, service, user):
        t1 = service.issue(user.id)
        t2 = service.rotate(t1.refresh_token)

        with pytest.raises(TokenReuseError) as excinfo:
            service.rotate(t1.refresh_token)

        assert excinfo.value.family_id == t1.family_id
        assert _record(service, t1.refresh_token).is_revoked is True
        assert _record(service, t2.refresh_token).is_revoked is True

    def test_c_revoked_successor_fails_as_revoked(self, service, user):
        t1 = service.issue(user.id)
        t2 = service.rotate(t1.refresh_token)
        with pytest.raises(TokenReuseError):
            service.rotate(t1.refresh_token)

        with pytest.raises(RevokedTokenError):
            service.rotate(t2.refresh_token)

    def test_d_expired_token_then_swept(self, service, user, clock):
        t1 = service.issue(user.id)
        clock.advance(days=7)

        with pytest.raises(ExpiredTokenError):
            service.rotate(t1.refresh_token)
        record = _record(service, t1.refresh_token)
        assert record.is_used is False
        assert record.is_revoked is False

        assert service.sweep() == 1
        with pytest.raises(UnknownTokenError):
            service.rotate(t1.refresh_token)

    def test_e_revoke_all_clears_session_list(self, service, user):
        for _ in range(3):
            service.issue(user.id)
        assert len(service.list_sessions(user.id)) == 3

        service.revoke_all_for_user(user.id)
        assert service.list_sessions(user.id) == []


class TestFailures:
    def test_unknown_token(self, service, user):
        with pytest.raises(UnknownTokenError):
            service.rotate("never-issued")

    def test_empty_token(self, service, user):
        with pytest.raises(UnknownTokenError):
            service.rotate("")

    def test_expiry_boundary_is_inclusive(self, service, user, clock):
        t1 = service.issue(user.id)
        clock.advance(days=7, seconds=-1)
        t2 = service.rotate(t1.refresh_token)

        clock.advance(days=7)
        with pytest.raises(ExpiredTokenError):
            service.rotate(t2.refresh_token)

    def test_revoked_token_fails_without_state_change(self, service, user):
        t1 = service.issue(user.id)
        record = _record(service, t1.refresh_token)
        service.revoke_token(record.id)
        revoked_at = _record(service, t1.refresh_token).revoked_at

        with pytest.raises(RevokedTokenError):
            service.rotate(t1.refresh_token)
        after = _record(service, t1.refresh_token)
        assert after.is_used is False
        assert after.revoked_at == revoked_at

    def test_all_rejections_share_a_base_class(self, service, user):
        t1 = service.issue(user.id)
        service.rotate(t1.refresh_token)
        for token in ("never-issued", t1.refresh_token):
            with pytest.raises(TokenError):
                service.rotate(token)

    def test_reuse_is_logged_as_warning(self, service, user, caplog):
        t1 = service.issue(user.id)
        service.rotate(t1.refresh_token)
        with caplog.at_level("WARNING", logger="tokens.rotation"):
            with pytest.raises(TokenReuseError):
                service.rotate(t1.refresh_token, SessionMeta(ip_address="203.0.113.9", user_agent="curl"))

        messages = [r.getMessage() for r in caplog.records if r.levelname == "WARNING"]
        assert any("reuse detected" in m and t1.family_id in m and "203.0.113.9" in m for m in messages)
        assert all(t1.refresh_token not in m for m in messages)


class TestSingleUse:
    def test_token_succeeds_at_most_once(self, service, user):
        t1 = service.issue(user.id)
        service.rotate(t1.refresh_token)

        for _ in range(3):
            with pytest.raises(TokenReuseError):
                service.rotate(t1.refresh_token)

    def test_cascade_reaches_members_rotated_before_the_replay(self, service, user):
        tokens = [service.issue(user.id)]
        for _ in range(4):
            tokens.append(service.rotate(tokens[-1].refresh_token))

        with pytest.raises(TokenReuseError):
            service.rotate(tokens[1].refresh_token)

        family = service.store.list_family(tokens[0].family_id)
        assert len(family) == 5
        assert all(r.is_revoked and r.revoked_at is not None for r in family)

    def test_cascade_leaves_other_families_alone(self, service, user):
        victim = service.issue(user.id)
        other = service.issue(user.id)
        service.rotate(victim.refresh_token)

        with pytest.raises(TokenReuseError):
            service.rotate(victim.refresh_token)

        assert _record(service, other.refresh_token).is_revoked is False
        service.rotate(other.refresh_token)


class TestChainIntegrity:
    def test_replaced_by_forms_a_single_line(self, service, user, clock):
        current = service.issue(user.id)
        for _ in range(5):
            clock.advance(minutes=10)
            current = service.rotate(current.refresh_token)

        family = service.store.list_family(current.family_id)
        chain = service.sessions.family_chain(current.family_id)
        assert len(chain) == len(family) == 6
        assert [r.id for r in chain[:-1]] == [r.id for r in family if r.is_used]
        for prev, nxt in zip(chain, chain[1:]):
            assert prev.replaced_by == nxt.id
        assert chain[-1].replaced_by is None
        assert chain[-1].token_hash == hash_token(current.refresh_token)

        successors = [r.replaced_by for r in family if r.replaced_by]
        assert len(successors) == len(set(successors))


class TestLostRace:
    def test_stale_reader_lands_in_reuse_branch(self, service, user, monkeypatch):
        t1 = service.issue(user.id)
        snapshot = _record(service, t1.refresh_token)
        stale = RefreshToken(
            id=snapshot.id,
            user_id=snapshot.user_id,
            token_hash=snapshot.token_hash,
            family_id=snapshot.family_id,
            is_used=False,
            is_revoked=False,
            expires_at=snapshot.expires_at,
        )
        t2 = service.rotate(t1.refresh_token)

        # a second request that read the row before the first one committed
        monkeypatch.setattr(service.store, "find_by_hash", lambda token_hash: stale)
        with pytest.raises(TokenReuseError):
            service.rotate(t1.refresh_token)
        monkeypatch.undo()

        family = service.store.list_family(t1.family_id)
        assert len(family) == 2
        assert all(r.is_revoked for r in family)
        assert _record(service, t2.refresh_token).is_revoked is True

    def test_stale_reader_of_revoked_token_fails_as_revoked(self, service, user, monkeypatch):
        t1 = service.issue(user.id)
        snapshot = _record(service, t1.refresh_token)
        stale = RefreshToken(
            id=snapshot.id,
            user_id=snapshot.user_id,
            token_hash=snapshot.token_hash,
            family_id=snapshot.family_id,
            is_used=False,
            is_revoked=False,
            expires_at=snapshot.expires_at,
        )
        service.revoke_token(snapshot.id)

        monkeypatch.setattr(service.store, "find_by_hash", lambda token_hash: stale)
        with pytest.raises(RevokedTokenError):
            service.rotate(t1.refresh_token)
        monkeypatch.undo()
        assert service.store.list_family(t1.family_id) == [_record(service, t1.refresh_token)]

    def test_stale_reader_of_swept_token_fails_as_unknown(self, service, user, clock, monkeypatch):
        t1 = service.issue(user.id)
        snapshot = _record(service, t1.refresh_token)
        stale = RefreshToken(
            id=snapshot.id,
            user_id=snapshot.user_id,
            token_hash=snapshot.token_hash,
            family_id=snapshot.family_id,
            is_used=False,
            is_revoked=False,
            expires_at=clock() + timedelta(days=30),
        )
        assert service.store.delete_expired(snapshot.expires_at) == 1

        monkeypatch.setattr(service.store, "find_by_hash", lambda token_hash: stale)
        with pytest.raises(UnknownTokenError):
            service.rotate(t1.refresh_token)
        monkeypatch.undo()
        assert service.store.list_family(t1.family_id) == []


class TestConcurrentRotation:
    @pytest.mark.parametrize("workers", [2, 8])
    def test_exactly_one_concurrent_rotation_wins(self, tmp_path, signer, workers):
        storage = DBStorage(f"sqlite:///{tmp_path / 'race.db'}")
        storage.reload()
        try:
            user = make_user(storage, email="race@example.com")
            service = TokenService(storage, signer, refresh_ttl=timedelta(days=7))
            token = service.issue(user.id).refresh_token
            storage.close()

            barrier = threading.Barrier(workers)
            results = []
            lock = threading.Lock()

            def worker():
                barrier.wait()
                try:
                    outcome = service.rotate(token)
                except TokenError as exc:
                    outcome = exc
                finally:
                    storage.close()
                with lock:
                    results.append(outcome)

            threads = [threading.Thread(target=worker) for _ in range(workers)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=60)

            winners = [r for r in results if not isinstance(r, Exception)]
            reuse = [r for r in results if isinstance(r, TokenReuseError)]
            assert len(results) == workers
            assert len(winners) == 1
            assert len(reuse) == workers - 1

            family = service.store.list_family(winners[0].family_id)
            assert len(family) == 2
            assert all(r.is_revoked for r in family)
        finally:
            storage.close()
            storage.drop_all()
            storage.engine.dispose()
