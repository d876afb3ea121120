from enum import Enum

from reahl.adtflow.workflow.session import DomainException


class ObjectKind(str, Enum):
    CLASS = 'class'
    PROGRAM = 'program'
    INTERFACE = 'interface'
    FUNCTION_GROUP = 'function_group'
    FUNCTION_MODULE = 'function_module'
    TABLE = 'table'
    STRUCTURE = 'structure'
    VIEW = 'view'
    DOMAIN = 'domain'
    DATA_ELEMENT = 'data_element'
    PACKAGE = 'package'
    BEHAVIOR_DEFINITION = 'behavior_definition'
    METADATA_EXTENSION = 'metadata_extension'

    @classmethod
    def from_tag(cls, tag):
        if isinstance(tag, cls):
            return tag
        normalized_tag = str(tag or '').strip().lower()
        for kind in cls:
            if kind.value == normalized_tag:
                return kind
        raise DomainException(
            'Invalid object kind %r. Must be one of: %s'
            % (tag, ', '.join(kind.value for kind in cls))
        )


def normalized_name(name):
    if name is None:
        return None
    return name.strip().upper()


def is_local_package(package_name):
    return bool(package_name) and package_name.startswith('$')


class ObjectDescriptor:
    def __init__(
        self,
        kind,
        name,
        package_name=None,
        super_package=None,
        transport_request=None,
        parent_name=None,
    ):
        if not name or not name.strip():
            raise DomainException('An object name is required.')
        self.kind = ObjectKind.from_tag(kind)
        self.name = normalized_name(name)
        self.package_name = normalized_name(package_name) or None
        self.super_package = normalized_name(super_package) or None
        self.transport_request = normalized_name(transport_request) or None
        self.parent_name = normalized_name(parent_name) or None
        if self.kind is ObjectKind.FUNCTION_MODULE and not self.parent_name:
            raise DomainException(
                'Function module %s needs the name of its function group.'
                % self.name
            )

    def require_transport_request_for_package(self):
        if self.package_name is None or is_local_package(self.package_name):
            return
        if not self.transport_request:
            raise DomainException(
                'Package %s is transportable: a transport request is required.'
                % self.package_name
            )

    def as_dict(self):
        return {
            'kind': self.kind.value,
            'name': self.name,
            'package_name': self.package_name,
            'super_package': self.super_package,
            'transport_request': self.transport_request,
            'parent_name': self.parent_name,
        }

    def __eq__(self, other):
        if not isinstance(other, ObjectDescriptor):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self):
        return hash((self.kind, self.name, self.parent_name))

    def __repr__(self):
        if self.parent_name:
            return '<ObjectDescriptor %s %s|%s>' % (
                self.kind.value,
                self.parent_name,
                self.name,
            )
        return '<ObjectDescriptor %s %s>' % (self.kind.value, self.name)
