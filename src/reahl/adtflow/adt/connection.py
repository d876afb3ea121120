import logging
import uuid

import requests
from requests.adapters import HTTPAdapter
from requests.utils import add_dict_to_cookiejar
from requests.utils import dict_from_cookiejar
from urllib3.util.retry import Retry

from reahl.adtflow import __version__
from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.session import SessionContext


DISCOVERY_PATH = '/sap/bc/adt/discovery'
READ_ONLY_METHODS = frozenset(['GET', 'HEAD'])


def read_only_retry_strategy():
    return Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=[502, 503, 504],
        allowed_methods=READ_ONLY_METHODS,
        raise_on_status=False,
    )


class AdtRequestError(RemoteCallFailed):
    pass


def cookies_from_header(cookie_header):
    cookie_store = {}
    for cookie_part in (cookie_header or '').split(';'):
        name, separator, value = cookie_part.strip().partition('=')
        if separator and name:
            cookie_store[name] = value
    return cookie_store


def cookie_header_for(cookie_store):
    return '; '.join('%s=%s' % (name, value) for name, value in cookie_store.items())


class AdtConnection:
    def __init__(self, configuration, http_session=None):
        self.configuration = configuration
        self.http_session = http_session or self.new_http_session()
        self.session_id = None
        self.csrf_token = None

    def new_http_session(self):
        http_session = requests.Session()
        adapter = HTTPAdapter(max_retries=read_only_retry_strategy())
        http_session.mount('http://', adapter)
        http_session.mount('https://', adapter)
        http_session.auth = (
            self.configuration.user_name,
            self.configuration.password,
        )
        http_session.verify = self.configuration.verify_tls
        http_session.headers.update(
            {
                'User-Agent': 'reahl-adtflow/%s' % __version__,
                'X-sap-adt-sessiontype': 'stateful',
            }
        )
        return http_session

    def connect(self):
        self.session_id = uuid.uuid4().hex
        logging.getLogger(__name__).debug(
            'Connecting to %s as %s (session %s)',
            self.configuration.url,
            self.configuration.user_name,
            self.session_id,
        )
        self.request(
            'GET',
            DISCOVERY_PATH,
            headers={
                'x-csrf-token': 'fetch',
                'Accept': 'application/atomsvc+xml',
            },
        )
        if not self.csrf_token:
            raise AdtRequestError(
                'The ABAP system did not issue a CSRF token.',
                status=403,
                body='CSRF token validation failed',
            )
        return self.session_context()

    def restore(self, session):
        self.session_id = session.session_id or uuid.uuid4().hex
        self.csrf_token = session.csrf_token
        self.http_session.cookies.clear()
        cookie_store = session.cookie_store or cookies_from_header(session.cookies)
        add_dict_to_cookiejar(self.http_session.cookies, cookie_store)

    def close(self):
        self.http_session.close()

    def session_context(self):
        cookie_store = dict_from_cookiejar(self.http_session.cookies)
        return SessionContext(
            session_id=self.session_id,
            cookies=cookie_header_for(cookie_store) or None,
            csrf_token=self.csrf_token,
            cookie_store=cookie_store,
        )

    def request(
        self,
        method,
        path,
        params=None,
        data=None,
        headers=None,
        timeout=None,
    ):
        method = method.upper()
        request_headers = {}
        if method not in READ_ONLY_METHODS and self.csrf_token:
            request_headers['x-csrf-token'] = self.csrf_token
        request_headers.update(headers or {})
        request_parameters = dict(params or {})
        if self.configuration.client:
            request_parameters.setdefault('sap-client', self.configuration.client)
        if isinstance(data, str):
            data = data.encode('utf-8')

        try:
            response = self.http_session.request(
                method,
                self.configuration.url + path,
                params=request_parameters,
                data=data,
                headers=request_headers,
                timeout=timeout or self.configuration.timeout,
            )
        except requests.Timeout as error:
            raise AdtRequestError(
                '%s %s timed out: %s' % (method, path, error),
                timed_out=True,
            ) from error
        except requests.RequestException as error:
            raise AdtRequestError(
                '%s %s failed: %s' % (method, path, error),
            ) from error

        self.capture_csrf_token(response)
        if response.status_code >= 400:
            logging.getLogger(__name__).debug(
                '%s %s failed with status %s',
                method,
                path,
                response.status_code,
            )
            raise AdtRequestError(
                '%s %s failed with status %s' % (method, path, response.status_code),
                status=response.status_code,
                body=response.text,
            )
        return response

    def capture_csrf_token(self, response):
        csrf_token = response.headers.get('x-csrf-token')
        # ADT echoes 'Required' when the token it got is missing or stale.
        if not csrf_token or csrf_token.lower() in ('required', 'fetch'):
            return
        if csrf_token != self.csrf_token:
            logging.getLogger(__name__).debug(
                'CSRF token rotated for session %s',
                self.session_id,
            )
        self.csrf_token = csrf_token
