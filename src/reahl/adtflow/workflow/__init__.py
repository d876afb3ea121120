from reahl.adtflow.workflow.errors import ErrorClassifier
from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import ErrorMessage
from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.locking import LockManager
from reahl.adtflow.workflow.objects import ObjectDescriptor
from reahl.adtflow.workflow.objects import ObjectKind
from reahl.adtflow.workflow.operations import LowLevelOperations
from reahl.adtflow.workflow.operations import OperationResult
from reahl.adtflow.workflow.orchestrator import WorkflowOrchestrator
from reahl.adtflow.workflow.orchestrator import WorkflowRequest
from reahl.adtflow.workflow.orchestrator import WorkflowResult
from reahl.adtflow.workflow.orchestrator import WorkflowState
from reahl.adtflow.workflow.registry import ObjectKindCapabilities
from reahl.adtflow.workflow.registry import ObjectKindRegistry
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.session import SessionContext
from reahl.adtflow.workflow.session import SessionEstablisher
from reahl.adtflow.workflow.steps import StepExecutor
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.workflow.steps import StepOutcome

__all__ = [
    'DomainException',
    'ErrorClassifier',
    'ErrorKind',
    'ErrorMessage',
    'LockManager',
    'LowLevelOperations',
    'ObjectDescriptor',
    'ObjectKind',
    'ObjectKindCapabilities',
    'ObjectKindRegistry',
    'OperationResult',
    'RemoteCallFailed',
    'SessionContext',
    'SessionEstablisher',
    'StepExecutor',
    'StepName',
    'StepOutcome',
    'WorkflowOrchestrator',
    'WorkflowRequest',
    'WorkflowResult',
    'WorkflowState',
]
