import functools
import logging

from reahl.adtflow.adt.environment import AdtWorkflowEnvironment
from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.objects import ObjectDescriptor
from reahl.adtflow.workflow.orchestrator import WorkflowRequest
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.session import SessionContext
from reahl.adtflow.workflow.steps import StepName


WRITE_STEPS = frozenset(
    [
        StepName.CREATE,
        StepName.LOCK,
        StepName.UPDATE,
        StepName.UNLOCK,
        StepName.ACTIVATE,
    ]
)


def register_tools(
    mcp_server,
    allow_write=False,
    allow_delete=False,
    environment_factory=None,
):
    if allow_delete and not allow_write:
        raise ValueError('allow_delete requires allow_write.')
    if environment_factory is None:
        environment_factory = AdtWorkflowEnvironment.from_environment

    original_tool_decorator_factory = mcp_server.tool

    def logged_tool_decorator_factory(*decorator_arguments, **decorator_keywords):
        tool_decorator = original_tool_decorator_factory(
            *decorator_arguments,
            **decorator_keywords,
        )

        def logged_tool_decorator(function):
            @functools.wraps(function)
            def logged_tool(*function_arguments, **function_keywords):
                logging.getLogger(__name__).debug('Tool %s called', function.__name__)
                tool_result = function(*function_arguments, **function_keywords)
                if isinstance(tool_result, dict) and not tool_result.get('ok'):
                    logging.getLogger(__name__).info(
                        'Tool %s did not succeed',
                        function.__name__,
                    )
                return tool_result

            return tool_decorator(logged_tool)

        return logged_tool_decorator

    try:
        mcp_server.tool = logged_tool_decorator_factory
    except AttributeError:
        pass

    def error_response(message, kind=ErrorKind.VALIDATION_FAILED):
        return {
            'ok': False,
            'error': {
                'kind': kind.value,
                'message': message,
            },
        }

    def disabled_tool_response(tool_name, flag_name):
        return error_response(
            (
                '%s is disabled. '
                'Start adtflow-mcp with %s to enable.'
            )
            % (tool_name, flag_name)
        )

    def step_is_disabled(step):
        if step is StepName.DELETE:
            return not allow_delete
        if step in WRITE_STEPS:
            return not allow_write
        return False

    def flag_for_step(step):
        if step is StepName.DELETE:
            return '--allow-delete'
        return '--allow-write'

    def descriptor_from_arguments(
        object_type,
        object_name,
        package_name='',
        transport_request='',
        parent_name='',
        super_package='',
    ):
        return ObjectDescriptor(
            object_type,
            object_name,
            package_name=package_name or None,
            super_package=super_package or None,
            transport_request=transport_request or None,
            parent_name=parent_name or None,
        )

    def session_from_arguments(session_id, session_state):
        if not session_id:
            return None
        return SessionContext.from_session_state(session_id, session_state)

    def payload_from_arguments(
        description='',
        source_code='',
        superclass='',
        properties=None,
    ):
        payload = {}
        if description:
            payload['description'] = description
        if source_code:
            payload['source_code'] = source_code
        if superclass:
            payload['superclass'] = superclass
        if properties:
            payload['properties'] = dict(properties)
        return payload

    def perform_low_level_operation(
        tool_name,
        step,
        descriptor_arguments,
        payload=None,
        session_id='',
        session_state=None,
        lock_handle='',
    ):
        if step_is_disabled(step):
            return disabled_tool_response(tool_name, flag_for_step(step))
        try:
            descriptor = descriptor_from_arguments(**descriptor_arguments)
            operations = environment_factory().create_low_level_operations()
            operation_result = operations.perform(
                step,
                descriptor,
                payload=payload,
                session=session_from_arguments(session_id, session_state),
                lock_handle=lock_handle or None,
            )
        except DomainException as error:
            return error_response(str(error))
        response = operation_result.as_dict()
        response['object'] = descriptor.as_dict()
        return response

    def run_workflow(tool_name, workflow_name, request_arguments, descriptor_arguments):
        step = {
            'create': StepName.CREATE,
            'update': StepName.UPDATE,
            'delete': StepName.DELETE,
        }[workflow_name]
        if step_is_disabled(step):
            return disabled_tool_response(tool_name, flag_for_step(step))
        try:
            descriptor = descriptor_from_arguments(**descriptor_arguments)
            orchestrator = environment_factory().create_orchestrator()
            request = WorkflowRequest(descriptor, **request_arguments)
            if workflow_name == 'create':
                workflow_result = orchestrator.run_create_workflow(request)
            elif workflow_name == 'update':
                workflow_result = orchestrator.run_update_workflow(request)
            else:
                workflow_result = orchestrator.run_delete_workflow(request)
        except DomainException as error:
            return error_response(str(error))
        return workflow_result.as_dict()

    @mcp_server.tool()
    def adt_list_object_kinds():
        try:
            registry = environment_factory().registry
        except DomainException as error:
            return error_response(str(error))
        return {
            'ok': True,
            'object_kinds': registry.summary(),
            'allow_write': allow_write,
            'allow_delete': allow_delete,
        }

    @mcp_server.tool()
    def adt_validate_object(
        object_type,
        object_name,
        package_name='',
        description='',
        superclass='',
        parent_name='',
        session_id='',
        session_state=None,
    ):
        return perform_low_level_operation(
            'adt_validate_object',
            StepName.VALIDATE,
            {
                'object_type': object_type,
                'object_name': object_name,
                'package_name': package_name,
                'parent_name': parent_name,
            },
            payload=payload_from_arguments(
                description=description,
                superclass=superclass,
            ),
            session_id=session_id,
            session_state=session_state,
        )

    @mcp_server.tool()
    def adt_create_object(
        object_type,
        object_name,
        package_name,
        description='',
        transport_request='',
        superclass='',
        parent_name='',
        super_package='',
        session_id='',
        session_state=None,
    ):
        return perform_low_level_operation(
            'adt_create_object',
            StepName.CREATE,
            {
                'object_type': object_type,
                'object_name': object_name,
                'package_name': package_name,
                'transport_request': transport_request,
                'parent_name': parent_name,
                'super_package': super_package,
            },
            payload=payload_from_arguments(
                description=description,
                superclass=superclass,
            ),
            session_id=session_id,
            session_state=session_state,
        )

    @mcp_server.tool()
    def adt_lock_object(
        object_type,
        object_name,
        parent_name='',
        session_id='',
        session_state=None,
    ):
        return perform_low_level_operation(
            'adt_lock_object',
            StepName.LOCK,
            {
                'object_type': object_type,
                'object_name': object_name,
                'parent_name': parent_name,
            },
            session_id=session_id,
            session_state=session_state,
        )

    @mcp_server.tool()
    def adt_update_object(
        object_type,
        object_name,
        lock_handle,
        session_id,
        session_state=None,
        source_code='',
        description='',
        properties=None,
        transport_request='',
        parent_name='',
    ):
        return perform_low_level_operation(
            'adt_update_object',
            StepName.UPDATE,
            {
                'object_type': object_type,
                'object_name': object_name,
                'transport_request': transport_request,
                'parent_name': parent_name,
            },
            payload=payload_from_arguments(
                description=description,
                source_code=source_code,
                properties=properties,
            ),
            session_id=session_id,
            session_state=session_state,
            lock_handle=lock_handle,
        )

    @mcp_server.tool()
    def adt_check_object(
        object_type,
        object_name,
        parent_name='',
        session_id='',
        session_state=None,
    ):
        return perform_low_level_operation(
            'adt_check_object',
            StepName.CHECK,
            {
                'object_type': object_type,
                'object_name': object_name,
                'parent_name': parent_name,
            },
            session_id=session_id,
            session_state=session_state,
        )

    @mcp_server.tool()
    def adt_unlock_object(
        object_type,
        object_name,
        lock_handle,
        session_id,
        session_state=None,
        parent_name='',
    ):
        return perform_low_level_operation(
            'adt_unlock_object',
            StepName.UNLOCK,
            {
                'object_type': object_type,
                'object_name': object_name,
                'parent_name': parent_name,
            },
            session_id=session_id,
            session_state=session_state,
            lock_handle=lock_handle,
        )

    @mcp_server.tool()
    def adt_activate_object(
        object_type,
        object_name,
        parent_name='',
        session_id='',
        session_state=None,
    ):
        return perform_low_level_operation(
            'adt_activate_object',
            StepName.ACTIVATE,
            {
                'object_type': object_type,
                'object_name': object_name,
                'parent_name': parent_name,
            },
            session_id=session_id,
            session_state=session_state,
        )

    @mcp_server.tool()
    def adt_delete_object(
        object_type,
        object_name,
        transport_request='',
        parent_name='',
        session_id='',
        session_state=None,
    ):
        return perform_low_level_operation(
            'adt_delete_object',
            StepName.DELETE,
            {
                'object_type': object_type,
                'object_name': object_name,
                'transport_request': transport_request,
                'parent_name': parent_name,
            },
            session_id=session_id,
            session_state=session_state,
        )

    @mcp_server.tool()
    def adt_create_workflow(
        object_type,
        object_name,
        package_name,
        description='',
        source_code='',
        transport_request='',
        superclass='',
        parent_name='',
        super_package='',
        properties=None,
        activate=True,
        validate=True,
        check=True,
    ):
        return run_workflow(
            'adt_create_workflow',
            'create',
            {
                'payload': payload_from_arguments(
                    description=description,
                    source_code=source_code,
                    superclass=superclass,
                    properties=properties,
                ),
                'activate': activate,
                'validate': validate,
                'check': check,
            },
            {
                'object_type': object_type,
                'object_name': object_name,
                'package_name': package_name,
                'transport_request': transport_request,
                'parent_name': parent_name,
                'super_package': super_package,
            },
        )

    @mcp_server.tool()
    def adt_update_workflow(
        object_type,
        object_name,
        source_code='',
        description='',
        properties=None,
        transport_request='',
        parent_name='',
        activate=True,
        check=True,
    ):
        return run_workflow(
            'adt_update_workflow',
            'update',
            {
                'payload': payload_from_arguments(
                    description=description,
                    source_code=source_code,
                    properties=properties,
                ),
                'activate': activate,
                'check': check,
            },
            {
                'object_type': object_type,
                'object_name': object_name,
                'transport_request': transport_request,
                'parent_name': parent_name,
            },
        )

    @mcp_server.tool()
    def adt_delete_workflow(
        object_type,
        object_name,
        transport_request='',
        parent_name='',
    ):
        return run_workflow(
            'adt_delete_workflow',
            'delete',
            {},
            {
                'object_type': object_type,
                'object_name': object_name,
                'transport_request': transport_request,
                'parent_name': parent_name,
            },
        )
