from enum import Enum
from xml.etree import ElementTree


class ErrorKind(str, Enum):
    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    INVALID_LOCK = 'invalid_lock'
    AUTHENTICATION_FAILED = 'authentication_failed'
    VALIDATION_FAILED = 'validation_failed'
    CLEANUP_FAILURE = 'cleanup_failure'
    UNKNOWN = 'unknown'


class ErrorMessage:
    def __init__(self, kind, text, severity='error'):
        if severity not in ('error', 'warning'):
            raise ValueError('severity must be error or warning, not %r' % severity)
        self.kind = kind
        self.text = text
        self.severity = severity

    @property
    def is_error(self):
        return self.severity == 'error'

    def as_warning(self):
        return self.__class__(self.kind, self.text, severity='warning')

    def as_dict(self):
        return {
            'kind': self.kind.value,
            'text': self.text,
            'severity': self.severity,
        }

    def __eq__(self, other):
        if not isinstance(other, ErrorMessage):
            return NotImplemented
        return (self.kind, self.text, self.severity) == (
            other.kind,
            other.text,
            other.severity,
        )

    def __repr__(self):
        return '<ErrorMessage %s %s: %r>' % (
            self.severity,
            self.kind.value,
            self.text,
        )


class RemoteCallFailed(Exception):
    def __init__(self, message, status=None, body='', timed_out=False):
        super().__init__(message)
        self.status = status
        self.body = body
        self.timed_out = timed_out


class RemoteBodyDetails:
    def __init__(self, exception_type='', message='', severity='', raw_text=''):
        self.exception_type = exception_type
        self.message = message
        self.severity = severity
        self.raw_text = raw_text

    @property
    def best_text(self):
        return self.message or self.raw_text


def local_name(tag):
    if not isinstance(tag, str):
        return ''
    return tag.rsplit('}', 1)[-1].rsplit(':', 1)[-1]


def first_descendant(element, name):
    for descendant in element.iter():
        if local_name(descendant.tag) == name:
            return descendant
    return None


def descendant_text(element, name):
    descendant = first_descendant(element, name)
    if descendant is None or descendant.text is None:
        return ''
    return descendant.text.strip()


def body_text(body):
    if body is None:
        return ''
    if isinstance(body, bytes):
        return body.decode('utf-8', errors='replace')
    return str(body)


def remote_body_details(body):
    raw_text = body_text(body).strip()
    if not raw_text.startswith('<'):
        return RemoteBodyDetails(raw_text=raw_text)
    try:
        root = ElementTree.fromstring(raw_text.encode('utf-8'))
    except ElementTree.ParseError:
        return RemoteBodyDetails(raw_text=raw_text)
    if local_name(root.tag) == 'exception':
        type_element = first_descendant(root, 'type')
        exception_type = ''
        if type_element is not None:
            exception_type = type_element.get('id') or (type_element.text or '').strip()
        return RemoteBodyDetails(
            exception_type=exception_type,
            message=(
                descendant_text(root, 'localizedMessage')
                or descendant_text(root, 'message')
            ),
            severity='ERROR',
            raw_text=raw_text,
        )
    data_element = first_descendant(root, 'DATA')
    if data_element is not None:
        return RemoteBodyDetails(
            message=descendant_text(data_element, 'SHORT_TEXT'),
            severity=descendant_text(data_element, 'SEVERITY').upper(),
            raw_text=raw_text,
        )
    return RemoteBodyDetails(raw_text=raw_text)


class ErrorClassifier:
    already_exists_phrases = (
        'already exists',
        'already exist',
        'does already exist',
    )
    invalid_lock_phrases = (
        'lock handle',
        'not locked',
        'invalid lock',
        'lock is invalid',
    )
    foreign_lock_phrases = (
        'locked by',
        'is currently editing',
        'currently being edited',
        'enqueue',
    )
    not_found_phrases = (
        'does not exist',
        'not found',
        'not exist',
    )
    authentication_phrases = (
        'csrf token validation failed',
        'logon failed',
        'session timed out',
        'session expired',
        'unauthorized',
        'not authorized',
        'no authorization',
    )

    def classify(self, http_status, body=None):
        return self.classify_failure(http_status, body).kind

    def classify_failure(self, http_status, body=None):
        try:
            details = remote_body_details(body)
            kind = self.kind_for(http_status, details)
            return ErrorMessage(kind, self.text_for(kind, http_status, details))
        except Exception as error:
            return ErrorMessage(
                ErrorKind.UNKNOWN,
                body_text(body) or 'Unclassifiable failure: %s' % error,
            )

    def kind_for(self, http_status, details):
        exception_type = details.exception_type.lower()
        text = ' '.join([details.message, details.raw_text]).lower()

        if http_status == 423:
            return ErrorKind.CONFLICT
        if 'alreadyexists' in exception_type or self.mentions(
            text, self.already_exists_phrases
        ):
            return ErrorKind.CONFLICT
        if 'invalidlock' in exception_type or self.mentions(
            text, self.invalid_lock_phrases
        ):
            return ErrorKind.INVALID_LOCK
        if self.mentions(text, self.foreign_lock_phrases):
            return ErrorKind.CONFLICT
        if http_status == 401 or (
            http_status == 403 and self.mentions(text, self.authentication_phrases)
        ):
            return ErrorKind.AUTHENTICATION_FAILED
        if http_status == 404 or 'notfound' in exception_type:
            return ErrorKind.NOT_FOUND
        if http_status == 409:
            return ErrorKind.CONFLICT
        if self.mentions(text, self.authentication_phrases):
            return ErrorKind.AUTHENTICATION_FAILED
        if http_status in (400, 422) or details.severity == 'ERROR':
            if self.mentions(details.message.lower(), self.not_found_phrases):
                return ErrorKind.NOT_FOUND
            return ErrorKind.VALIDATION_FAILED
        return ErrorKind.UNKNOWN

    def mentions(self, text, phrases):
        return any(phrase in text for phrase in phrases)

    def text_for(self, kind, http_status, details):
        if kind is ErrorKind.UNKNOWN:
            if details.raw_text:
                return details.raw_text
            if http_status is None:
                return 'Remote call failed without a response.'
            return 'Remote call failed with status %s.' % http_status
        if details.best_text:
            return details.best_text
        return 'Remote call failed with status %s.' % http_status
