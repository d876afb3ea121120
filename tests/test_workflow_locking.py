from reahl.tofu import Fixture
from reahl.tofu import expected
from reahl.tofu import with_fixtures

from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.locking import LockManager
from reahl.adtflow.workflow.locking import abbreviated_lock_handle
from reahl.adtflow.workflow.objects import ObjectDescriptor
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.session import SessionContext
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.workflow.steps import StepOutcome

from fake_adt import FakeAdtSystem


class LockFixture(Fixture):
    def new_adt_system(self):
        return FakeAdtSystem()

    def new_lock_manager(self):
        return LockManager(self.adt_system.capabilities_for('class'))

    def new_descriptor(self):
        return ObjectDescriptor('class', 'ZCL_DEMO')

    def new_session(self):
        return SessionContext(session_id='session-1', csrf_token='token-0')


@with_fixtures(LockFixture)
def test_acquire_records_the_held_lock(fixture):
    outcome, session = fixture.lock_manager.acquire(fixture.descriptor, fixture.session)

    assert outcome.success
    assert outcome.lock_handle == fixture.adt_system.lock_handle
    assert session.csrf_token == 'token-1'
    assert fixture.lock_manager.has_held_locks()


@with_fixtures(LockFixture)
def test_release_forgets_the_held_lock(fixture):
    outcome, session = fixture.lock_manager.acquire(fixture.descriptor, fixture.session)

    unlock_outcome, session = fixture.lock_manager.release(
        fixture.descriptor,
        outcome.lock_handle,
        session,
    )

    assert unlock_outcome.success
    assert not fixture.lock_manager.has_held_locks()
    [unlock_call] = fixture.adt_system.calls_for(StepName.UNLOCK)
    assert unlock_call.lock_handle == fixture.adt_system.lock_handle


@with_fixtures(LockFixture)
def test_a_second_lock_cannot_be_taken_while_one_is_held(fixture):
    fixture.lock_manager.acquire(fixture.descriptor, fixture.session)

    with expected(DomainException):
        fixture.lock_manager.acquire(fixture.descriptor, fixture.session)


@with_fixtures(LockFixture)
def test_a_lock_without_a_handle_is_a_failure(fixture):
    fixture.adt_system.respond(StepName.LOCK, StepOutcome.succeeded(StepName.LOCK))

    outcome, session = fixture.lock_manager.acquire(fixture.descriptor, fixture.session)

    assert not outcome.success
    assert outcome.error_kind is ErrorKind.UNKNOWN
    assert not fixture.lock_manager.has_held_locks()


@with_fixtures(LockFixture)
def test_a_failing_lock_is_reported_not_raised(fixture):
    fixture.adt_system.fail(
        StepName.LOCK,
        RemoteCallFailed('Locked', status=423, body='Object is locked by user OTHER'),
    )

    outcome, session = fixture.lock_manager.acquire(fixture.descriptor, fixture.session)

    assert not outcome.success
    assert outcome.error_kind is ErrorKind.CONFLICT
    assert session == fixture.session


@with_fixtures(LockFixture)
def test_a_lock_cannot_be_released_from_another_session(fixture):
    outcome, session = fixture.lock_manager.acquire(fixture.descriptor, fixture.session)
    other_session = SessionContext(session_id='session-2')

    unlock_outcome, returned_session = fixture.lock_manager.release(
        fixture.descriptor,
        outcome.lock_handle,
        other_session,
    )

    assert not unlock_outcome.success
    assert unlock_outcome.error_kind is ErrorKind.INVALID_LOCK
    assert returned_session is other_session
    assert fixture.adt_system.calls_for(StepName.UNLOCK) == []


@with_fixtures(LockFixture)
def test_a_failing_unlock_is_reported_not_raised(fixture):
    outcome, session = fixture.lock_manager.acquire(fixture.descriptor, fixture.session)
    fixture.adt_system.fail(StepName.UNLOCK, RuntimeError('socket closed'))

    unlock_outcome, session = fixture.lock_manager.release(
        fixture.descriptor,
        outcome.lock_handle,
        session,
    )

    assert not unlock_outcome.success
    assert unlock_outcome.errors[0].text == 'RuntimeError: socket closed'


def test_lock_handles_are_abbreviated_for_logging():
    assert abbreviated_lock_handle('LOCKHANDLE0123456789') == 'LOCKHANDLE01...'
    assert abbreviated_lock_handle('SHORT') == 'SHORT'
    assert abbreviated_lock_handle(None) is None
