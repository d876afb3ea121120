from reahl.tofu import Fixture
from reahl.tofu import expected
from reahl.tofu import with_fixtures

from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.operations import LowLevelOperations
from reahl.adtflow.workflow.orchestrator import WorkflowOrchestrator
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.mcp.tools import register_tools

from fake_adt import FakeAdtSystem
from fake_adt import FakeSessionEstablisher


class McpToolRegistrar:
    def __init__(self):
        self.registered_tools_by_name = {}

    def tool(self):
        def register(function):
            self.registered_tools_by_name[function.__name__] = function
            return function

        return register


class FakeWorkflowEnvironment:
    def __init__(self, adt_system):
        self.registry = adt_system.registry()
        self.session_establisher = FakeSessionEstablisher()

    def create_orchestrator(self):
        return WorkflowOrchestrator(self.registry, self.session_establisher)

    def create_low_level_operations(self):
        return LowLevelOperations(self.registry, self.session_establisher)


class RestrictedToolsFixture(Fixture):
    allow_write = False
    allow_delete = False

    def new_adt_system(self):
        return FakeAdtSystem()

    def new_environment(self):
        return FakeWorkflowEnvironment(self.adt_system)

    def new_registered_mcp_tools(self):
        registrar = McpToolRegistrar()
        register_tools(
            registrar,
            allow_write=self.allow_write,
            allow_delete=self.allow_delete,
            environment_factory=lambda: self.environment,
        )
        return registrar.registered_tools_by_name

    def tool(self, tool_name):
        return self.registered_mcp_tools[tool_name]


class WriteToolsFixture(RestrictedToolsFixture):
    allow_write = True


class AllToolsFixture(RestrictedToolsFixture):
    allow_write = True
    allow_delete = True


@with_fixtures(RestrictedToolsFixture)
def test_all_tools_are_registered(tools_fixture):
    assert sorted(tools_fixture.registered_mcp_tools) == [
        'adt_activate_object',
        'adt_check_object',
        'adt_create_object',
        'adt_create_workflow',
        'adt_delete_object',
        'adt_delete_workflow',
        'adt_list_object_kinds',
        'adt_lock_object',
        'adt_unlock_object',
        'adt_update_object',
        'adt_update_workflow',
        'adt_validate_object',
    ]


@with_fixtures(RestrictedToolsFixture)
def test_adt_create_workflow_is_disabled_by_default(tools_fixture):
    create_result = tools_fixture.tool('adt_create_workflow')(
        'class',
        'ZCL_DEMO',
        '$TMP',
    )
    assert not create_result['ok']
    assert create_result['error']['message'] == (
        'adt_create_workflow is disabled. '
        'Start adtflow-mcp with --allow-write to enable.'
    )
    assert tools_fixture.adt_system.calls == []


@with_fixtures(RestrictedToolsFixture)
def test_adt_lock_object_is_disabled_by_default(tools_fixture):
    lock_result = tools_fixture.tool('adt_lock_object')('class', 'ZCL_DEMO')
    assert not lock_result['ok']
    assert '--allow-write' in lock_result['error']['message']


@with_fixtures(WriteToolsFixture)
def test_delete_tools_need_their_own_flag(tools_fixture):
    delete_result = tools_fixture.tool('adt_delete_workflow')('class', 'ZCL_DEMO')
    assert not delete_result['ok']
    assert delete_result['error']['message'] == (
        'adt_delete_workflow is disabled. '
        'Start adtflow-mcp with --allow-delete to enable.'
    )


@with_fixtures(RestrictedToolsFixture)
def test_read_only_tools_work_without_write_permission(tools_fixture):
    validate_result = tools_fixture.tool('adt_validate_object')(
        'class',
        'zcl_demo',
        package_name='$tmp',
    )
    assert validate_result['ok']
    assert validate_result['object']['name'] == 'ZCL_DEMO'

    check_result = tools_fixture.tool('adt_check_object')('class', 'ZCL_DEMO')
    assert check_result['ok']


@with_fixtures(RestrictedToolsFixture)
def test_adt_list_object_kinds_reports_steps_and_policy(tools_fixture):
    kinds_result = tools_fixture.tool('adt_list_object_kinds')()
    assert kinds_result['ok']
    assert not kinds_result['allow_write']
    assert {entry['kind'] for entry in kinds_result['object_kinds']} >= {
        'class',
        'program',
        'package',
    }


@with_fixtures(WriteToolsFixture)
def test_adt_create_workflow_runs_the_full_workflow(tools_fixture):
    create_result = tools_fixture.tool('adt_create_workflow')(
        'class',
        'zcl_demo',
        '$tmp',
        description='Demo class',
        source_code='CLASS zcl_demo DEFINITION. ENDCLASS.',
    )
    assert create_result['ok'], create_result
    assert create_result['state'] == 'completed'
    assert [step['step'] for step in create_result['steps']] == [
        'validate',
        'create',
        'lock',
        'update',
        'check',
        'unlock',
        'activate',
    ]
    [update_call] = tools_fixture.adt_system.calls_for(StepName.UPDATE)
    assert update_call.payload == {
        'description': 'Demo class',
        'source_code': 'CLASS zcl_demo DEFINITION. ENDCLASS.',
    }


@with_fixtures(WriteToolsFixture)
def test_adt_create_workflow_reports_cleanup_failures(tools_fixture):
    failure = RemoteCallFailed('Server error', status=500, body='Internal Server Error')
    tools_fixture.adt_system.fail(StepName.UPDATE, failure)
    tools_fixture.adt_system.fail(StepName.UNLOCK, failure)

    create_result = tools_fixture.tool('adt_create_workflow')('class', 'ZCL_DEMO', '$TMP')

    assert not create_result['ok']
    assert create_result['state'] == 'completed_with_cleanup_failure'
    assert create_result['steps'][-1]['messages'][-1]['kind'] == 'cleanup_failure'


@with_fixtures(WriteToolsFixture)
def test_transportable_packages_need_a_transport_request(tools_fixture):
    create_result = tools_fixture.tool('adt_create_workflow')('class', 'ZCL_DEMO', 'ZPACKAGE')
    assert not create_result['ok']
    assert create_result['error']['kind'] == 'validation_failed'
    assert 'transport request is required' in create_result['error']['message']


@with_fixtures(WriteToolsFixture)
def test_unknown_object_types_are_reported(tools_fixture):
    create_result = tools_fixture.tool('adt_create_workflow')('spreadsheet', 'ZDEMO', '$TMP')
    assert not create_result['ok']
    assert create_result['error']['message'].startswith("Invalid object kind 'spreadsheet'")


@with_fixtures(WriteToolsFixture)
def test_low_level_tools_thread_the_session_between_calls(tools_fixture):
    lock_result = tools_fixture.tool('adt_lock_object')('program', 'ZDEMO_REPORT')
    assert lock_result['ok']

    update_result = tools_fixture.tool('adt_update_object')(
        'program',
        'ZDEMO_REPORT',
        lock_result['lock_handle'],
        lock_result['session_id'],
        session_state=lock_result['session_state'],
        source_code='REPORT zdemo_report.',
    )
    assert update_result['ok']

    unlock_result = tools_fixture.tool('adt_unlock_object')(
        'program',
        'ZDEMO_REPORT',
        lock_result['lock_handle'],
        update_result['session_id'],
        session_state=update_result['session_state'],
    )
    assert unlock_result['ok']

    csrf_tokens = [call.session.csrf_token for call in tools_fixture.adt_system.calls]
    assert csrf_tokens == ['token-0', 'token-1', 'token-2']


@with_fixtures(WriteToolsFixture)
def test_adt_update_object_needs_a_lock_handle(tools_fixture):
    update_result = tools_fixture.tool('adt_update_object')(
        'program',
        'ZDEMO_REPORT',
        '',
        'session-1',
        source_code='REPORT zdemo_report.',
    )
    assert not update_result['ok']
    assert 'requires the lock_handle' in update_result['error']['message']


@with_fixtures(AllToolsFixture)
def test_adt_delete_workflow_deletes_when_allowed(tools_fixture):
    delete_result = tools_fixture.tool('adt_delete_workflow')('class', 'ZCL_DEMO')
    assert delete_result['ok']
    assert tools_fixture.adt_system.called_steps == [StepName.DELETE]


@with_fixtures(RestrictedToolsFixture)
def test_missing_connection_settings_are_reported(tools_fixture):
    def failing_environment_factory():
        raise DomainException('The URL of the ABAP system is required.')

    registrar = McpToolRegistrar()
    register_tools(registrar, environment_factory=failing_environment_factory)

    kinds_result = registrar.registered_tools_by_name['adt_list_object_kinds']()
    assert not kinds_result['ok']
    assert kinds_result['error']['message'] == 'The URL of the ABAP system is required.'


def test_delete_permission_requires_write_permission():
    with expected(ValueError):
        register_tools(McpToolRegistrar(), allow_delete=True)
