import logging
from enum import Enum

from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import ErrorMessage
from reahl.adtflow.workflow.locking import LockManager
from reahl.adtflow.workflow.locking import abbreviated_lock_handle
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.workflow.steps import StepOutcome
from reahl.adtflow.workflow.steps import error_message_for_exception


HARD_FAIL_STEPS = frozenset(
    [
        StepName.VALIDATE,
        StepName.CREATE,
        StepName.LOCK,
        StepName.UPDATE,
        StepName.DELETE,
    ]
)

LOCKED_STEPS = frozenset([StepName.UPDATE, StepName.CHECK])


class WorkflowState(str, Enum):
    COMPLETED = 'completed'
    ABORTED = 'aborted'
    COMPLETED_WITH_CLEANUP_FAILURE = 'completed_with_cleanup_failure'


class WorkflowRequest:
    def __init__(
        self,
        descriptor,
        payload=None,
        session=None,
        activate=False,
        validate=True,
        check=True,
    ):
        self.descriptor = descriptor
        self.payload = dict(payload or {})
        self.session = session
        self.activate = activate
        self.validate = validate
        self.check = check


class WorkflowResult:
    def __init__(self, workflow_name, descriptor):
        self.workflow_name = workflow_name
        self.descriptor = descriptor
        self.outcomes = []
        self.messages = []
        self.state = None
        self.lock_handle = None
        self.session = None
        self.already_exists = False

    def record(self, outcome):
        self.outcomes.append(outcome)
        return outcome

    def finish(self, state, session):
        self.state = state
        self.session = session
        logging.getLogger(__name__).debug(
            '%s workflow for %r finished: %s (success=%s)',
            self.workflow_name,
            self.descriptor,
            state.value,
            self.success,
        )
        return self

    @property
    def attempted_steps(self):
        return [outcome.step for outcome in self.outcomes]

    def outcome_for(self, step):
        for outcome in self.outcomes:
            if outcome.step is StepName(step):
                return outcome
        return None

    def has_hard_failure(self):
        return any(
            not outcome.success
            for outcome in self.outcomes
            if outcome.step in HARD_FAIL_STEPS
        )

    def has_locked_step_failure(self):
        return any(
            not outcome.success
            for outcome in self.outcomes
            if outcome.step in LOCKED_STEPS
        )

    def has_cleanup_failure(self):
        return any(
            outcome.has_message_of_kind(ErrorKind.CLEANUP_FAILURE)
            for outcome in self.outcomes
        )

    def has_failed_activation(self):
        activate_outcome = self.outcome_for(StepName.ACTIVATE)
        return activate_outcome is not None and not activate_outcome.success

    @property
    def success(self):
        if any(message.is_error for message in self.messages):
            return False
        if self.state in (
            WorkflowState.ABORTED,
            WorkflowState.COMPLETED_WITH_CLEANUP_FAILURE,
        ):
            return False
        if self.has_failed_activation():
            return False
        return not self.has_hard_failure()

    def as_dict(self):
        return {
            'ok': self.success,
            'success': self.success,
            'workflow': self.workflow_name,
            'state': self.state.value if self.state else None,
            'object': self.descriptor.as_dict(),
            'already_exists': self.already_exists,
            'lock_handle': self.lock_handle,
            'steps': [outcome.as_dict() for outcome in self.outcomes],
            'messages': [message.as_dict() for message in self.messages],
            'session_state': None,
        }


class WorkflowOrchestrator:
    def __init__(
        self,
        registry,
        session_establisher,
        classifier=None,
        block_activation_on_check_errors=False,
    ):
        self.registry = registry
        self.session_establisher = session_establisher
        self.classifier = classifier
        self.block_activation_on_check_errors = block_activation_on_check_errors

    def run_create_workflow(self, request):
        descriptor = request.descriptor
        capabilities = self.registry.capabilities_for(descriptor.kind)
        descriptor.require_transport_request_for_package()
        result = WorkflowResult('create', descriptor)

        session = self.establish_session(request, result)
        if session is None:
            return result.finish(WorkflowState.ABORTED, None)

        if request.validate and capabilities.supports(StepName.VALIDATE):
            outcome, session = self.run_step(
                capabilities,
                StepName.VALIDATE,
                descriptor,
                request.payload,
                session,
            )
            if not outcome.success and outcome.error_kind is ErrorKind.CONFLICT:
                result.record(self.already_exists_outcome(outcome))
                result.already_exists = True
                logging.getLogger(__name__).info(
                    '%r already exists, nothing to create',
                    descriptor,
                )
                return result.finish(WorkflowState.COMPLETED, session)
            result.record(outcome)
            if not outcome.success:
                return result.finish(WorkflowState.ABORTED, session)

        outcome, session = self.run_step(
            capabilities,
            StepName.CREATE,
            descriptor,
            request.payload,
            session,
        )
        result.record(outcome)
        if not outcome.success:
            return result.finish(WorkflowState.ABORTED, session)

        return self.run_locked_steps(capabilities, request, result, session)

    def run_update_workflow(self, request):
        descriptor = request.descriptor
        capabilities = self.registry.capabilities_for(descriptor.kind)
        result = WorkflowResult('update', descriptor)

        session = self.establish_session(request, result)
        if session is None:
            return result.finish(WorkflowState.ABORTED, None)
        return self.run_locked_steps(capabilities, request, result, session)

    def run_delete_workflow(self, request):
        descriptor = request.descriptor
        capabilities = self.registry.capabilities_for(descriptor.kind)
        result = WorkflowResult('delete', descriptor)

        session = self.establish_session(request, result)
        if session is None:
            return result.finish(WorkflowState.ABORTED, None)
        outcome, session = self.run_step(
            capabilities,
            StepName.DELETE,
            descriptor,
            request.payload,
            session,
        )
        result.record(outcome)
        if not outcome.success:
            return result.finish(WorkflowState.ABORTED, session)
        return result.finish(WorkflowState.COMPLETED, session)

    def run_locked_steps(self, capabilities, request, result, session):
        descriptor = request.descriptor
        lock_manager = LockManager(capabilities, self.classifier)
        outcome, session = lock_manager.acquire(descriptor, session)
        result.record(outcome)
        if not outcome.success:
            return result.finish(WorkflowState.ABORTED, session)

        lock_handle = outcome.lock_handle
        result.lock_handle = lock_handle
        # Unlock must run even when update or check is interrupted.
        try:
            session = self.run_update_and_check(
                capabilities,
                request,
                result,
                session,
                lock_handle,
            )
        finally:
            unlock_outcome, session = lock_manager.release(
                descriptor,
                lock_handle,
                session,
            )
            result.record(unlock_outcome)

        if not unlock_outcome.success:
            if result.has_locked_step_failure():
                unlock_outcome.add_message(
                    self.cleanup_failure_message(descriptor, lock_handle)
                )
                logging.getLogger(__name__).warning(
                    'Could not unlock %r after a failed step; lock %s may still be held',
                    descriptor,
                    abbreviated_lock_handle(lock_handle),
                )
                return result.finish(
                    WorkflowState.COMPLETED_WITH_CLEANUP_FAILURE,
                    session,
                )
            unlock_outcome.messages = [
                message.as_warning() for message in unlock_outcome.messages
            ]
            logging.getLogger(__name__).warning(
                'Could not unlock %r; the lock is left to expire with the session',
                descriptor,
            )

        if result.has_hard_failure():
            return result.finish(WorkflowState.COMPLETED, session)

        if request.activate and capabilities.supports(StepName.ACTIVATE):
            if self.activation_is_blocked_by_check(result):
                result.messages.append(
                    ErrorMessage(
                        ErrorKind.VALIDATION_FAILED,
                        'Activation of %s skipped: the check reported errors.'
                        % descriptor.name,
                        severity='warning',
                    )
                )
            else:
                outcome, session = self.run_step(
                    capabilities,
                    StepName.ACTIVATE,
                    descriptor,
                    request.payload,
                    session,
                )
                result.record(outcome)
                if not outcome.success:
                    logging.getLogger(__name__).warning(
                        'Activation of %r failed: %s',
                        descriptor,
                        '; '.join(message.text for message in outcome.errors),
                    )
        return result.finish(WorkflowState.COMPLETED, session)

    def run_update_and_check(self, capabilities, request, result, session, lock_handle):
        outcome, session = self.run_step(
            capabilities,
            StepName.UPDATE,
            request.descriptor,
            request.payload,
            session,
            lock_handle=lock_handle,
        )
        result.record(outcome)
        if not outcome.success:
            return session
        if request.check and capabilities.supports(StepName.CHECK):
            outcome, session = self.run_step(
                capabilities,
                StepName.CHECK,
                request.descriptor,
                request.payload,
                session,
                lock_handle=lock_handle,
            )
            result.record(outcome)
        return session

    def activation_is_blocked_by_check(self, result):
        if not self.block_activation_on_check_errors:
            return False
        check_outcome = result.outcome_for(StepName.CHECK)
        return check_outcome is not None and bool(check_outcome.errors)

    def establish_session(self, request, result):
        try:
            return self.session_establisher.establish(request.session)
        except Exception as error:
            message = error_message_for_exception(error, self.classifier)
            result.messages.append(message)
            logging.getLogger(__name__).warning(
                'Could not establish a session for %r: %s',
                request.descriptor,
                message.text,
            )
            return None

    def run_step(
        self,
        capabilities,
        step,
        descriptor,
        payload,
        session,
        lock_handle=None,
    ):
        executor = capabilities.executor_for(step)
        logging.getLogger(__name__).debug('%s %r', step.value, descriptor)
        try:
            return executor.execute(
                descriptor,
                payload,
                session,
                lock_handle=lock_handle,
            )
        except Exception as error:
            logging.getLogger(__name__).debug(
                '%s of %r raised %r',
                step.value,
                descriptor,
                error,
            )
            return StepOutcome.from_exception(step, error, self.classifier), session

    def already_exists_outcome(self, outcome):
        return StepOutcome.succeeded(
            StepName.VALIDATE,
            messages=[message.as_warning() for message in outcome.messages],
            raw=outcome.raw,
        )

    def cleanup_failure_message(self, descriptor, lock_handle):
        return ErrorMessage(
            ErrorKind.CLEANUP_FAILURE,
            (
                'Unlock of %s failed after an earlier step failed. Lock %s may '
                'still be held until the session expires.'
            )
            % (descriptor.name, abbreviated_lock_handle(lock_handle)),
        )
