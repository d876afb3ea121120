from reahl.adtflow.workflow.objects import ObjectKind
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.steps import StepName


class ObjectKindCapabilities:
    required_steps = (
        StepName.CREATE,
        StepName.LOCK,
        StepName.UPDATE,
        StepName.UNLOCK,
        StepName.DELETE,
    )

    def __init__(
        self,
        kind,
        create,
        lock,
        update,
        unlock,
        delete,
        validate=None,
        check=None,
        activate=None,
    ):
        self.kind = ObjectKind.from_tag(kind)
        self.executors_by_step = {
            StepName.VALIDATE: validate,
            StepName.CREATE: create,
            StepName.LOCK: lock,
            StepName.UPDATE: update,
            StepName.CHECK: check,
            StepName.UNLOCK: unlock,
            StepName.ACTIVATE: activate,
            StepName.DELETE: delete,
        }
        missing_steps = [
            step.value
            for step in self.required_steps
            if self.executors_by_step[step] is None
        ]
        if missing_steps:
            raise ValueError(
                'Object kind %s is missing executors for: %s'
                % (self.kind.value, ', '.join(missing_steps))
            )

    def supports(self, step):
        return self.executors_by_step[StepName(step)] is not None

    def executor_for(self, step):
        executor = self.executors_by_step[StepName(step)]
        if executor is None:
            raise DomainException(
                'Object kind %s does not support %s.'
                % (self.kind.value, StepName(step).value)
            )
        return executor

    @property
    def supported_steps(self):
        return [step for step in StepName if self.supports(step)]


class ObjectKindRegistry:
    def __init__(self, capabilities=None):
        self.capabilities_by_kind = {}
        for kind_capabilities in capabilities or []:
            self.register(kind_capabilities)

    def register(self, capabilities):
        if capabilities.kind in self.capabilities_by_kind:
            raise ValueError(
                'Object kind %s is already registered.' % capabilities.kind.value
            )
        self.capabilities_by_kind[capabilities.kind] = capabilities

    def capabilities_for(self, kind):
        object_kind = ObjectKind.from_tag(kind)
        try:
            return self.capabilities_by_kind[object_kind]
        except KeyError:
            raise DomainException(
                'No capabilities registered for object kind %s.' % object_kind.value
            )

    def has_kind(self, kind):
        return ObjectKind.from_tag(kind) in self.capabilities_by_kind

    @property
    def kinds(self):
        return sorted(self.capabilities_by_kind, key=lambda kind: kind.value)

    def summary(self):
        return [
            {
                'kind': kind.value,
                'steps': [
                    step.value
                    for step in self.capabilities_by_kind[kind].supported_steps
                ],
            }
            for kind in self.kinds
        ]
