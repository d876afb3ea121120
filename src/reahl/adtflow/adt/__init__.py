from reahl.adtflow.adt.configuration import AdtConfiguration
from reahl.adtflow.adt.connection import AdtConnection
from reahl.adtflow.adt.connection import AdtRequestError
from reahl.adtflow.adt.environment import AdtWorkflowEnvironment
from reahl.adtflow.adt.environment import create_adt_registry
from reahl.adtflow.adt.executors import adt_capabilities_for
from reahl.adtflow.adt.wiring import OBJECT_KIND_WIRINGS
from reahl.adtflow.adt.wiring import wiring_for

__all__ = [
    'AdtConfiguration',
    'AdtConnection',
    'AdtRequestError',
    'AdtWorkflowEnvironment',
    'OBJECT_KIND_WIRINGS',
    'adt_capabilities_for',
    'create_adt_registry',
    'wiring_for',
]
