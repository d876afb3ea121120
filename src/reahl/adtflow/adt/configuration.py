import os

from reahl.adtflow.workflow.session import DomainException


DEFAULT_TIMEOUT_SECONDS = 60


def boolean_flag_from_environment(environment_name, default=False):
    environment_value = os.environ.get(environment_name)
    if environment_value is None:
        return default
    normalized_environment_value = environment_value.strip().lower()
    return normalized_environment_value in {
        '1',
        'true',
        'yes',
        'on',
    }


class AdtConfiguration:
    def __init__(
        self,
        url,
        user_name,
        password,
        client=None,
        timeout=DEFAULT_TIMEOUT_SECONDS,
        verify_tls=True,
        language='EN',
    ):
        if not url:
            raise DomainException('The URL of the ABAP system is required.')
        if not url.startswith(('http://', 'https://')):
            raise DomainException(
                'Invalid ABAP system URL %r. Expected format: https://host:port'
                % url
            )
        if not user_name or not password:
            raise DomainException(
                'A user name and password are required for basic authentication.'
            )
        self.url = url.rstrip('/')
        self.user_name = user_name
        self.password = password
        self.client = client or None
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.language = language

    @classmethod
    def from_environment(cls):
        timeout_text = os.environ.get('SAP_TIMEOUT', '').strip()
        try:
            timeout = float(timeout_text) if timeout_text else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise DomainException(
                'SAP_TIMEOUT must be a number of seconds, not %r.' % timeout_text
            )
        return cls(
            os.environ.get('SAP_URL', '').strip(),
            os.environ.get('SAP_USERNAME', '').strip(),
            os.environ.get('SAP_PASSWORD', ''),
            client=os.environ.get('SAP_CLIENT', '').strip(),
            timeout=timeout,
            verify_tls=boolean_flag_from_environment('SAP_VERIFY_TLS', default=True),
            language=os.environ.get('SAP_LANGUAGE', 'EN').strip() or 'EN',
        )

    def __repr__(self):
        return '<AdtConfiguration %s client=%s user=%s>' % (
            self.url,
            self.client,
            self.user_name,
        )
