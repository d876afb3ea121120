from xml.etree import ElementTree
from xml.sax.saxutils import escape
from xml.sax.saxutils import quoteattr

from reahl.adtflow.adt.wiring import ADT_CORE_NAMESPACE
from reahl.adtflow.workflow.errors import body_text
from reahl.adtflow.workflow.errors import descendant_text
from reahl.adtflow.workflow.errors import first_descendant
from reahl.adtflow.workflow.errors import local_name


XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def attribute_text(attributes):
    return ''.join(
        ' %s=%s' % (name, quoteattr(str(value)))
        for name, value in attributes
        if value is not None
    )


def object_attributes(wiring, descriptor, description, responsible, language):
    return [
        ('xmlns:%s' % wiring.namespace_prefix, wiring.namespace),
        ('xmlns:adtcore', ADT_CORE_NAMESPACE),
        ('adtcore:description', description),
        ('adtcore:language', language),
        ('adtcore:masterLanguage', language),
        ('adtcore:name', descriptor.name),
        ('adtcore:type', wiring.adt_type),
        ('adtcore:responsible', responsible),
    ]


def creation_children(wiring, descriptor, payload):
    prefix = wiring.namespace_prefix
    children = []
    if descriptor.package_name and wiring.adt_type != 'DEVC/K':
        children.append(
            '<adtcore:packageRef%s/>'
            % attribute_text([('adtcore:name', descriptor.package_name)])
        )
    if descriptor.parent_name:
        children.append(
            '<adtcore:containerRef%s/>'
            % attribute_text(
                [
                    ('adtcore:name', descriptor.parent_name),
                    ('adtcore:type', 'FUGR/F'),
                    (
                        'adtcore:uri',
                        '/sap/bc/adt/functions/groups/%s'
                        % descriptor.parent_name.lower(),
                    ),
                ]
            )
        )
    if payload.get('superclass'):
        children.append(
            '<%s:superClassRef%s/>'
            % (prefix, attribute_text([('adtcore:name', payload['superclass'].upper())]))
        )
    if wiring.adt_type == 'DEVC/K':
        children.append(
            '<pak:attributes%s/>'
            % attribute_text(
                [('pak:packageType', payload.get('package_type', 'development'))]
            )
        )
        if descriptor.super_package:
            children.append(
                '<pak:superPackage%s/>'
                % attribute_text([('adtcore:name', descriptor.super_package)])
            )
        children.append(
            '<pak:transport><pak:softwareComponent%s/></pak:transport>'
            % attribute_text(
                [('pak:name', payload.get('software_component', 'LOCAL'))]
            )
        )
    return children


def property_children(wiring, properties):
    prefix = wiring.namespace_prefix
    return [
        '<%s:%s>%s</%s:%s>' % (prefix, name, escape(str(value)), prefix, name)
        for name, value in sorted((properties or {}).items())
    ]


def object_body(wiring, attributes, children):
    return '%s\n<%s%s>%s</%s>' % (
        XML_DECLARATION,
        wiring.root_element,
        attribute_text(attributes),
        ''.join(children),
        wiring.root_element,
    )


def creation_body(wiring, descriptor, payload, description, responsible, language):
    return object_body(
        wiring,
        object_attributes(wiring, descriptor, description, responsible, language),
        creation_children(wiring, descriptor, payload),
    )


def metadata_body(wiring, descriptor, payload, description, responsible, language):
    return object_body(
        wiring,
        object_attributes(wiring, descriptor, description, responsible, language),
        creation_children(wiring, descriptor, payload)
        + property_children(wiring, payload.get('properties')),
    )


def check_run_body(object_uri, version='inactive'):
    return (
        '%s\n'
        '<chkrun:checkObjectList xmlns:chkrun="http://www.sap.com/adt/checkrun" '
        'xmlns:adtcore="http://www.sap.com/adt/core">'
        '<chkrun:checkObject%s/>'
        '</chkrun:checkObjectList>'
    ) % (
        XML_DECLARATION,
        attribute_text([('adtcore:uri', object_uri), ('chkrun:version', version)]),
    )


def activation_body(object_uri, object_name):
    return (
        '%s\n'
        '<adtcore:objectReferences xmlns:adtcore="http://www.sap.com/adt/core">'
        '<adtcore:objectReference%s/>'
        '</adtcore:objectReferences>'
    ) % (
        XML_DECLARATION,
        attribute_text([('adtcore:uri', object_uri), ('adtcore:name', object_name)]),
    )


def deletion_body(object_uri, transport_request=None):
    transport_element = ''
    if transport_request:
        transport_element = '<del:transportNumber>%s</del:transportNumber>' % escape(
            transport_request
        )
    return (
        '%s\n'
        '<del:deletionRequest xmlns:del="http://www.sap.com/adt/deletion" '
        'xmlns:adtcore="http://www.sap.com/adt/core">'
        '<del:object%s>%s</del:object>'
        '</del:deletionRequest>'
    ) % (
        XML_DECLARATION,
        attribute_text([('adtcore:uri', object_uri)]),
        transport_element,
    )


def parsed_xml(body):
    text = body_text(body).strip()
    if not text:
        return None
    return ElementTree.fromstring(text.encode('utf-8'))


def attribute_value(element, name):
    for attribute_name, value in element.attrib.items():
        if local_name(attribute_name) == name:
            return value
    return None


def parse_lock_result(body):
    try:
        root = parsed_xml(body)
    except ElementTree.ParseError:
        return {'lock_handle': None, 'transport_request': None}
    if root is None:
        return {'lock_handle': None, 'transport_request': None}
    return {
        'lock_handle': descendant_text(root, 'LOCK_HANDLE') or None,
        'transport_request': descendant_text(root, 'CORRNR') or None,
    }


def parse_validation_result(body):
    try:
        root = parsed_xml(body)
    except ElementTree.ParseError:
        return {'valid': False, 'severity': 'ERROR', 'message': body_text(body).strip()}
    if root is None:
        return {'valid': True, 'severity': None, 'message': ''}
    if local_name(root.tag) == 'exception':
        return {
            'valid': False,
            'severity': 'ERROR',
            'message': (
                descendant_text(root, 'localizedMessage')
                or descendant_text(root, 'message')
            ),
        }
    data_element = first_descendant(root, 'DATA')
    if data_element is None:
        return {'valid': True, 'severity': None, 'message': ''}
    if descendant_text(data_element, 'CHECK_RESULT') == 'X':
        return {'valid': True, 'severity': None, 'message': ''}
    severity = descendant_text(data_element, 'SEVERITY').upper() or None
    return {
        'valid': severity != 'ERROR',
        'severity': severity,
        'message': descendant_text(data_element, 'SHORT_TEXT'),
        'long_text': descendant_text(data_element, 'LONG_TEXT'),
    }


def check_message_text(message_element):
    short_text = attribute_value(message_element, 'shortText')
    if short_text:
        return short_text
    short_text_element = first_descendant(message_element, 'shortText')
    if short_text_element is None:
        return ''
    text_element = first_descendant(short_text_element, 'txt')
    if text_element is not None and text_element.text:
        return text_element.text.strip()
    return (short_text_element.text or '').strip()


def parse_check_run(body):
    empty_report = {
        'status': 'no_report',
        'message': 'No check report in response (no issues reported)',
        'errors': [],
        'warnings': [],
        'info': [],
        'has_errors': False,
        'has_warnings': False,
    }
    try:
        root = parsed_xml(body)
    except ElementTree.ParseError as error:
        return dict(
            empty_report,
            status='parse_error',
            message='Failed to parse check run response: %s' % error,
            has_errors=True,
        )
    if root is None:
        return empty_report
    report = root if local_name(root.tag) == 'checkReport' else first_descendant(root, 'checkReport')
    if report is None:
        return empty_report

    errors = []
    warnings = []
    info = []
    for element in report.iter():
        if local_name(element.tag) != 'checkMessage':
            continue
        message_type = attribute_value(element, 'type') or 'I'
        entry = {
            'type': message_type,
            'text': check_message_text(element),
            'uri': attribute_value(element, 'uri'),
        }
        if message_type == 'E':
            errors.append(entry)
        elif message_type == 'W':
            warnings.append(entry)
        else:
            info.append(entry)

    status = attribute_value(report, 'status') or 'unknown'
    return {
        'status': status,
        'message': attribute_value(report, 'statusText') or '',
        'errors': errors,
        'warnings': warnings,
        'info': info,
        'has_errors': bool(errors) or status == 'notProcessed',
        'has_warnings': bool(warnings),
    }


def is_true(value):
    return str(value).strip().lower() == 'true'


def parse_activation_result(body):
    try:
        root = parsed_xml(body)
    except ElementTree.ParseError as error:
        return {
            'activated': False,
            'checked': False,
            'generated': False,
            'messages': [
                {
                    'type': 'E',
                    'text': 'Failed to parse activation response: %s' % error,
                }
            ],
        }
    if root is None:
        return {'activated': True, 'checked': True, 'generated': False, 'messages': []}

    properties = first_descendant(root, 'properties')
    messages = []
    for element in root.iter():
        if local_name(element.tag) != 'msg':
            continue
        messages.append(
            {
                'type': attribute_value(element, 'type') or 'I',
                'text': check_message_text(element) or 'Unknown message',
                'line': attribute_value(element, 'line'),
            }
        )
    has_errors = any(message['type'] in ('E', 'A') for message in messages)
    if properties is None:
        return {
            'activated': not has_errors,
            'checked': not has_errors,
            'generated': False,
            'messages': messages,
        }
    return {
        'activated': is_true(attribute_value(properties, 'activationExecuted')),
        'checked': is_true(attribute_value(properties, 'checkExecuted')),
        'generated': is_true(attribute_value(properties, 'generationExecuted')),
        'messages': messages,
    }
