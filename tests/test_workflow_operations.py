from reahl.tofu import Fixture
from reahl.tofu import expected
from reahl.tofu import with_fixtures

from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.objects import ObjectDescriptor
from reahl.adtflow.workflow.operations import LowLevelOperations
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.session import SessionContext
from reahl.adtflow.workflow.steps import StepName

from fake_adt import FakeAdtSystem
from fake_adt import FakeSessionEstablisher


class OperationsFixture(Fixture):
    def new_adt_system(self):
        return FakeAdtSystem()

    def new_session_establisher(self):
        return FakeSessionEstablisher()

    def new_operations(self):
        return LowLevelOperations(
            self.adt_system.registry(),
            self.session_establisher,
        )

    def new_descriptor(self):
        return ObjectDescriptor('program', 'zdemo_report', package_name='$TMP')


@with_fixtures(OperationsFixture)
def test_lock_returns_the_handle_and_session_state(fixture):
    operation_result = fixture.operations.perform('lock', fixture.descriptor)

    response = operation_result.as_dict()
    assert response['ok']
    assert response['step'] == 'lock'
    assert response['lock_handle'] == fixture.adt_system.lock_handle
    assert response['session_id'] == 'session-1'
    assert response['session_state']['csrf_token'] == 'token-1'
    assert response['error_kind'] is None


@with_fixtures(OperationsFixture)
def test_a_caller_can_thread_the_session_through_separate_operations(fixture):
    lock_result = fixture.operations.perform('lock', fixture.descriptor)
    session = SessionContext.from_session_state(
        lock_result.session.session_id,
        lock_result.session.as_session_state(),
    )

    update_result = fixture.operations.perform(
        'update',
        fixture.descriptor,
        payload={'source_code': 'REPORT zdemo_report.'},
        session=session,
        lock_handle=lock_result.outcome.lock_handle,
    )

    assert update_result.success
    [update_call] = fixture.adt_system.calls_for(StepName.UPDATE)
    assert update_call.session.csrf_token == 'token-1'
    assert update_call.lock_handle == fixture.adt_system.lock_handle
    assert update_call.payload == {'source_code': 'REPORT zdemo_report.'}


@with_fixtures(OperationsFixture)
def test_update_and_unlock_need_a_lock_handle(fixture):
    for step in ('update', 'unlock'):
        with expected(DomainException):
            fixture.operations.perform(step, fixture.descriptor)
    assert fixture.adt_system.calls == []


@with_fixtures(OperationsFixture)
def test_create_in_a_transportable_package_needs_a_transport_request(fixture):
    descriptor = ObjectDescriptor('program', 'ZDEMO_REPORT', package_name='ZPACKAGE')

    with expected(DomainException):
        fixture.operations.perform('create', descriptor)


@with_fixtures(OperationsFixture)
def test_remote_failures_are_classified_in_the_result(fixture):
    fixture.adt_system.fail(
        StepName.ACTIVATE,
        RemoteCallFailed('Not found', status=404, body='Program ZDEMO_REPORT not found'),
    )

    operation_result = fixture.operations.perform('activate', fixture.descriptor)

    assert not operation_result.success
    assert operation_result.error_kind is ErrorKind.NOT_FOUND
    assert operation_result.as_dict()['messages'][0]['kind'] == 'not_found'


@with_fixtures(OperationsFixture)
def test_session_failures_are_reported_in_the_result(fixture):
    fixture.session_establisher = FakeSessionEstablisher(
        error=RemoteCallFailed('Unauthorized', status=401, body='')
    )

    operation_result = fixture.operations.perform('check', fixture.descriptor)

    assert not operation_result.success
    assert operation_result.error_kind is ErrorKind.AUTHENTICATION_FAILED
    assert operation_result.as_dict()['session_state'] is None


@with_fixtures(OperationsFixture)
def test_unknown_steps_are_rejected(fixture):
    with expected(ValueError):
        fixture.operations.perform('publish', fixture.descriptor)
