from urllib.parse import quote

from reahl.adtflow.workflow.objects import ObjectKind


ADT_CORE_NAMESPACE = 'http://www.sap.com/adt/core'


def encoded_object_name(name):
    return quote(name.lower(), safe='')


class ObjectKindWiring:
    def __init__(
        self,
        kind,
        adt_type,
        collection_path,
        root_element,
        namespace,
        content_type,
        validation_path,
        source_based=True,
        activatable=True,
        source_template=None,
    ):
        self.kind = kind
        self.adt_type = adt_type
        self.collection_path = collection_path
        self.root_element = root_element
        self.namespace = namespace
        self.content_type = content_type
        self.validation_path = validation_path
        self.source_based = source_based
        self.activatable = activatable
        self.source_template = source_template

    @property
    def namespace_prefix(self):
        return self.root_element.split(':', 1)[0]

    def collection_uri(self, descriptor):
        if '{parent}' in self.collection_path:
            return self.collection_path.format(
                parent=encoded_object_name(descriptor.parent_name)
            )
        return self.collection_path

    def object_uri(self, descriptor):
        return '%s/%s' % (
            self.collection_uri(descriptor),
            encoded_object_name(descriptor.name),
        )

    def source_uri(self, descriptor):
        return self.object_uri(descriptor) + '/source/main'

    def default_source(self, descriptor, description):
        if self.source_template is None:
            return None
        return self.source_template.format(
            name=descriptor.name,
            description=description,
        )


CLASS_TEMPLATE = '''CLASS {name} DEFINITION
  PUBLIC
  FINAL
  CREATE PUBLIC .

  PUBLIC SECTION.
  PROTECTED SECTION.
  PRIVATE SECTION.
ENDCLASS.

CLASS {name} IMPLEMENTATION.
ENDCLASS.'''

INTERFACE_TEMPLATE = '''INTERFACE {name}
  PUBLIC .
ENDINTERFACE.'''

PROGRAM_TEMPLATE = '''*&---------------------------------------------------------------------*
*& Report {name}
*&---------------------------------------------------------------------*
*& {description}
*&---------------------------------------------------------------------*
REPORT {name}.'''


OBJECT_KIND_WIRINGS = [
    ObjectKindWiring(
        ObjectKind.CLASS,
        'CLAS/OC',
        '/sap/bc/adt/oo/classes',
        'class:abapClass',
        'http://www.sap.com/adt/oo/classes',
        'application/vnd.sap.adt.oo.classes.v4+xml',
        '/sap/bc/adt/oo/validation/objectname',
        source_template=CLASS_TEMPLATE,
    ),
    ObjectKindWiring(
        ObjectKind.INTERFACE,
        'INTF/OI',
        '/sap/bc/adt/oo/interfaces',
        'intf:abapInterface',
        'http://www.sap.com/adt/oo/interfaces',
        'application/vnd.sap.adt.oo.interfaces.v5+xml',
        '/sap/bc/adt/oo/validation/objectname',
        source_template=INTERFACE_TEMPLATE,
    ),
    ObjectKindWiring(
        ObjectKind.PROGRAM,
        'PROG/P',
        '/sap/bc/adt/programs/programs',
        'program:abapProgram',
        'http://www.sap.com/adt/programs/programs',
        'application/vnd.sap.adt.programs.programs.v2+xml',
        '/sap/bc/adt/programs/validation',
        source_template=PROGRAM_TEMPLATE,
    ),
    ObjectKindWiring(
        ObjectKind.FUNCTION_GROUP,
        'FUGR/F',
        '/sap/bc/adt/functions/groups',
        'group:abapFunctionGroup',
        'http://www.sap.com/adt/functions/groups',
        'application/vnd.sap.adt.functions.groups.v3+xml',
        '/sap/bc/adt/functions/validation',
        source_based=False,
    ),
    ObjectKindWiring(
        ObjectKind.FUNCTION_MODULE,
        'FUGR/FF',
        '/sap/bc/adt/functions/groups/{parent}/fmodules',
        'fmodule:abapFunctionModule',
        'http://www.sap.com/adt/functions/fmodules',
        'application/vnd.sap.adt.functions.fmodules.v3+xml',
        '/sap/bc/adt/functions/validation',
    ),
    ObjectKindWiring(
        ObjectKind.TABLE,
        'TABL/DT',
        '/sap/bc/adt/ddic/tables',
        'blue:blueSource',
        'http://www.sap.com/wbobj/blue',
        'application/vnd.sap.adt.tables.v2+xml',
        '/sap/bc/adt/ddic/tables/validation',
    ),
    ObjectKindWiring(
        ObjectKind.STRUCTURE,
        'TABL/DS',
        '/sap/bc/adt/ddic/structures',
        'blue:blueSource',
        'http://www.sap.com/wbobj/blue',
        'application/vnd.sap.adt.structures.v2+xml',
        '/sap/bc/adt/ddic/structures/validation',
    ),
    ObjectKindWiring(
        ObjectKind.VIEW,
        'DDLS/DF',
        '/sap/bc/adt/ddic/ddl/sources',
        'ddl:ddlSource',
        'http://www.sap.com/adt/ddic/ddlsources',
        'application/vnd.sap.adt.ddlsource+xml',
        '/sap/bc/adt/ddic/ddl/validation',
    ),
    ObjectKindWiring(
        ObjectKind.DOMAIN,
        'DOMA/DD',
        '/sap/bc/adt/ddic/domains',
        'doma:domain',
        'http://www.sap.com/dictionary/domain',
        'application/vnd.sap.adt.domains.v2+xml',
        '/sap/bc/adt/ddic/domains/validation',
        source_based=False,
    ),
    ObjectKindWiring(
        ObjectKind.DATA_ELEMENT,
        'DTEL/DE',
        '/sap/bc/adt/ddic/dataelements',
        'blue:wbobj',
        'http://www.sap.com/wbobj/dictionary/dtel',
        'application/vnd.sap.adt.dataelements.v2+xml',
        '/sap/bc/adt/ddic/dataelements/validation',
        source_based=False,
    ),
    ObjectKindWiring(
        ObjectKind.PACKAGE,
        'DEVC/K',
        '/sap/bc/adt/packages',
        'pak:package',
        'http://www.sap.com/adt/packages',
        'application/vnd.sap.adt.packages.v1+xml',
        '/sap/bc/adt/packages/validation',
        source_based=False,
        activatable=False,
    ),
    ObjectKindWiring(
        ObjectKind.BEHAVIOR_DEFINITION,
        'BDEF/BDO',
        '/sap/bc/adt/bo/behaviordefinitions',
        'blue:blueSource',
        'http://www.sap.com/wbobj/blue',
        'application/vnd.sap.adt.blues.v1+xml',
        '/sap/bc/adt/bo/behaviordefinitions/validation',
    ),
    ObjectKindWiring(
        ObjectKind.METADATA_EXTENSION,
        'DDLX/EX',
        '/sap/bc/adt/ddic/ddlx/sources',
        'ddlxsources:ddlxSource',
        'http://www.sap.com/adt/ddic/ddlxsources',
        'application/vnd.sap.adt.ddic.ddlx.v1+xml',
        '/sap/bc/adt/ddic/ddlx/sources/validation',
    ),
]


def wiring_for(kind):
    object_kind = ObjectKind.from_tag(kind)
    for wiring in OBJECT_KIND_WIRINGS:
        if wiring.kind is object_kind:
            return wiring
    raise KeyError(object_kind)
