from reahl.adtflow.adt.configuration import AdtConfiguration
from reahl.adtflow.adt.connection import AdtConnection
from reahl.adtflow.adt.executors import adt_capabilities_for
from reahl.adtflow.adt.wiring import OBJECT_KIND_WIRINGS
from reahl.adtflow.workflow.errors import ErrorClassifier
from reahl.adtflow.workflow.operations import LowLevelOperations
from reahl.adtflow.workflow.orchestrator import WorkflowOrchestrator
from reahl.adtflow.workflow.registry import ObjectKindRegistry
from reahl.adtflow.workflow.session import SessionEstablisher


def create_adt_registry(connection_factory, classifier=None):
    return ObjectKindRegistry(
        [
            adt_capabilities_for(wiring, connection_factory, classifier=classifier)
            for wiring in OBJECT_KIND_WIRINGS
        ]
    )


class AdtWorkflowEnvironment:
    def __init__(
        self,
        registry,
        session_establisher,
        classifier=None,
        block_activation_on_check_errors=False,
    ):
        self.registry = registry
        self.session_establisher = session_establisher
        self.classifier = classifier or ErrorClassifier()
        self.block_activation_on_check_errors = block_activation_on_check_errors

    @classmethod
    def from_configuration(cls, configuration, block_activation_on_check_errors=False):
        def connection_factory():
            return AdtConnection(configuration)

        classifier = ErrorClassifier()
        return cls(
            create_adt_registry(connection_factory, classifier=classifier),
            SessionEstablisher(connection_factory),
            classifier=classifier,
            block_activation_on_check_errors=block_activation_on_check_errors,
        )

    @classmethod
    def from_environment(cls, block_activation_on_check_errors=False):
        return cls.from_configuration(
            AdtConfiguration.from_environment(),
            block_activation_on_check_errors=block_activation_on_check_errors,
        )

    def create_orchestrator(self):
        return WorkflowOrchestrator(
            self.registry,
            self.session_establisher,
            classifier=self.classifier,
            block_activation_on_check_errors=self.block_activation_on_check_errors,
        )

    def create_low_level_operations(self):
        return LowLevelOperations(
            self.registry,
            self.session_establisher,
            classifier=self.classifier,
        )
