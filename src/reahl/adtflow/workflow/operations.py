import logging

from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.workflow.steps import StepOutcome


class OperationResult:
    def __init__(self, outcome, session):
        self.outcome = outcome
        self.session = session

    @property
    def success(self):
        return self.outcome.success

    @property
    def data(self):
        return self.outcome.raw

    @property
    def error_kind(self):
        return self.outcome.error_kind

    def as_dict(self):
        error_kind = self.error_kind
        return {
            'ok': self.success,
            'success': self.success,
            'step': self.outcome.step.value,
            'data': self.data,
            'lock_handle': self.outcome.lock_handle,
            'messages': [message.as_dict() for message in self.outcome.messages],
            'error_kind': error_kind.value if error_kind else None,
            'session_id': self.session.session_id if self.session else None,
            'session_state': (
                self.session.as_session_state() if self.session else None
            ),
        }


class LowLevelOperations:
    steps_needing_lock_handle = (StepName.UPDATE, StepName.UNLOCK)

    def __init__(self, registry, session_establisher, classifier=None):
        self.registry = registry
        self.session_establisher = session_establisher
        self.classifier = classifier

    def perform(self, step, descriptor, payload=None, session=None, lock_handle=None):
        step = StepName(step)
        executor = self.registry.capabilities_for(descriptor.kind).executor_for(step)
        if step in self.steps_needing_lock_handle and not lock_handle:
            raise DomainException(
                '%s of %s requires the lock_handle returned by lock.'
                % (step.value, descriptor.name)
            )
        if step is StepName.CREATE:
            descriptor.require_transport_request_for_package()

        try:
            session = self.session_establisher.establish(session)
        except Exception as error:
            return OperationResult(
                StepOutcome.from_exception(step, error, self.classifier),
                session,
            )

        logging.getLogger(__name__).debug('%s %r', step.value, descriptor)
        try:
            outcome, session = executor.execute(
                descriptor,
                dict(payload or {}),
                session,
                lock_handle=lock_handle,
            )
        except Exception as error:
            outcome = StepOutcome.from_exception(step, error, self.classifier)
        return OperationResult(outcome, session)
