from enum import Enum

from reahl.adtflow.workflow.errors import ErrorClassifier
from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import ErrorMessage
from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.session import DomainException


class StepName(str, Enum):
    VALIDATE = 'validate'
    CREATE = 'create'
    LOCK = 'lock'
    UPDATE = 'update'
    CHECK = 'check'
    UNLOCK = 'unlock'
    ACTIVATE = 'activate'
    DELETE = 'delete'


class StepOutcome:
    def __init__(
        self,
        step,
        success,
        messages=None,
        raw=None,
        lock_handle=None,
    ):
        self.step = StepName(step)
        self.success = success
        self.messages = list(messages or [])
        self.raw = raw
        self.lock_handle = lock_handle

    @classmethod
    def succeeded(cls, step, messages=None, raw=None, lock_handle=None):
        return cls(step, True, messages=messages, raw=raw, lock_handle=lock_handle)

    @classmethod
    def failed(cls, step, message, raw=None):
        return cls(step, False, messages=[message], raw=raw)

    @classmethod
    def from_exception(cls, step, error, classifier=None):
        return cls.failed(step, error_message_for_exception(error, classifier))

    @property
    def errors(self):
        return [message for message in self.messages if message.is_error]

    @property
    def warnings(self):
        return [message for message in self.messages if not message.is_error]

    @property
    def error_kind(self):
        if self.success or not self.errors:
            return None
        return self.errors[0].kind

    def has_message_of_kind(self, kind):
        return any(message.kind is kind for message in self.messages)

    def add_message(self, message):
        self.messages.append(message)

    def as_dict(self):
        outcome = {
            'step': self.step.value,
            'success': self.success,
            'messages': [message.as_dict() for message in self.messages],
        }
        if self.raw is not None:
            outcome['raw'] = self.raw
        if self.lock_handle is not None:
            outcome['lock_handle'] = self.lock_handle
        return outcome

    def __repr__(self):
        return '<StepOutcome %s %s>' % (
            self.step.value,
            'succeeded' if self.success else 'failed',
        )


def error_message_for_exception(error, classifier=None):
    if isinstance(error, RemoteCallFailed):
        if error.timed_out or (error.status is None and not error.body):
            return ErrorMessage(ErrorKind.UNKNOWN, str(error))
        return (classifier or ErrorClassifier()).classify_failure(
            error.status,
            error.body,
        )
    if isinstance(error, DomainException):
        return ErrorMessage(ErrorKind.VALIDATION_FAILED, str(error))
    return ErrorMessage(
        ErrorKind.UNKNOWN,
        '%s: %s' % (error.__class__.__name__, error),
    )


class StepExecutor:
    step_name = None

    def execute(self, descriptor, payload, session, lock_handle=None):
        raise NotImplementedError()

    def __repr__(self):
        return '<%s %s>' % (self.__class__.__name__, self.step_name.value)
