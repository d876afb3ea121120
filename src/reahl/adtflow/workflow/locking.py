import logging

from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import ErrorMessage
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.workflow.steps import StepOutcome


def abbreviated_lock_handle(lock_handle):
    if not lock_handle:
        return lock_handle
    if len(lock_handle) <= 12:
        return lock_handle
    return lock_handle[:12] + '...'


class HeldLock:
    def __init__(self, descriptor, lock_handle, session_id):
        self.descriptor = descriptor
        self.lock_handle = lock_handle
        self.session_id = session_id


class LockManager:
    def __init__(self, capabilities, classifier=None):
        self.capabilities = capabilities
        self.classifier = classifier
        self.held_locks = []

    @property
    def lock_executor(self):
        return self.capabilities.executor_for(StepName.LOCK)

    @property
    def unlock_executor(self):
        return self.capabilities.executor_for(StepName.UNLOCK)

    def has_held_locks(self):
        return bool(self.held_locks)

    def held_lock_for(self, descriptor, lock_handle):
        for held_lock in self.held_locks:
            if (
                held_lock.lock_handle == lock_handle
                and held_lock.descriptor == descriptor
            ):
                return held_lock
        return None

    def acquire(self, descriptor, session):
        if self.held_locks:
            raise DomainException(
                'A lock on %r is still held; release it before locking again.'
                % self.held_locks[0].descriptor
            )
        logging.getLogger(__name__).debug('Locking %r', descriptor)
        try:
            outcome, session = self.lock_executor.execute(descriptor, {}, session)
        except Exception as error:
            return StepOutcome.from_exception(StepName.LOCK, error, self.classifier), session
        if outcome.success and not outcome.lock_handle:
            outcome = StepOutcome.failed(
                StepName.LOCK,
                ErrorMessage(
                    ErrorKind.UNKNOWN,
                    'Lock of %s did not return a lock handle.' % descriptor.name,
                ),
                raw=outcome.raw,
            )
        if outcome.success:
            self.held_locks.append(
                HeldLock(descriptor, outcome.lock_handle, session.session_id)
            )
            logging.getLogger(__name__).debug(
                'Locked %r with handle %s',
                descriptor,
                abbreviated_lock_handle(outcome.lock_handle),
            )
        return outcome, session

    def release(self, descriptor, lock_handle, session):
        held_lock = self.held_lock_for(descriptor, lock_handle)
        if held_lock is not None:
            self.held_locks.remove(held_lock)
            if held_lock.session_id != session.session_id:
                return self.foreign_session_outcome(descriptor, held_lock, session), session
        logging.getLogger(__name__).debug(
            'Unlocking %r with handle %s',
            descriptor,
            abbreviated_lock_handle(lock_handle),
        )
        try:
            return self.unlock_executor.execute(
                descriptor,
                {},
                session,
                lock_handle=lock_handle,
            )
        except Exception as error:
            return StepOutcome.from_exception(StepName.UNLOCK, error, self.classifier), session

    def foreign_session_outcome(self, descriptor, held_lock, session):
        return StepOutcome.failed(
            StepName.UNLOCK,
            ErrorMessage(
                ErrorKind.INVALID_LOCK,
                (
                    'Lock handle for %s belongs to session %s and cannot be '
                    'released from session %s.'
                )
                % (descriptor.name, held_lock.session_id, session.session_id),
            ),
        )
