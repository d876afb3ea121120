import logging


class DomainException(Exception):
    pass


class SessionContext:
    def __init__(
        self,
        session_id=None,
        cookies=None,
        csrf_token=None,
        cookie_store=None,
    ):
        self._session_id = session_id
        self._cookies = cookies
        self._csrf_token = csrf_token
        self._cookie_store = dict(cookie_store or {})

    @classmethod
    def empty(cls):
        return cls()

    @classmethod
    def from_session_state(cls, session_id, session_state):
        session_state = session_state or {}
        return cls(
            session_id=session_id,
            cookies=session_state.get('cookies'),
            csrf_token=session_state.get('csrf_token'),
            cookie_store=session_state.get('cookie_store'),
        )

    @property
    def session_id(self):
        return self._session_id

    @property
    def cookies(self):
        return self._cookies

    @property
    def csrf_token(self):
        return self._csrf_token

    @property
    def cookie_store(self):
        return dict(self._cookie_store)

    def replaced(self, **changes):
        current_values = {
            'session_id': self._session_id,
            'cookies': self._cookies,
            'csrf_token': self._csrf_token,
            'cookie_store': self._cookie_store,
        }
        unknown_names = set(changes) - set(current_values)
        if unknown_names:
            raise TypeError(
                'Unknown session fields: %s' % ', '.join(sorted(unknown_names))
            )
        current_values.update(changes)
        return self.__class__(**current_values)

    def as_session_state(self):
        return {
            'cookies': self._cookies,
            'csrf_token': self._csrf_token,
            'cookie_store': dict(self._cookie_store),
        }

    def __eq__(self, other):
        if not isinstance(other, SessionContext):
            return NotImplemented
        return (
            self._session_id == other._session_id
            and self._cookies == other._cookies
            and self._csrf_token == other._csrf_token
            and self._cookie_store == other._cookie_store
        )

    def __hash__(self):
        return hash((self._session_id, self._cookies, self._csrf_token))

    def __repr__(self):
        return '<SessionContext session_id=%r csrf_token=%s cookies=%s>' % (
            self._session_id,
            'set' if self._csrf_token else 'unset',
            sorted(self._cookie_store),
        )


class SessionEstablisher:
    def __init__(self, connection_factory):
        self.connection_factory = connection_factory

    def establish(self, inbound_session=None):
        connection = self.connection_factory()
        try:
            if inbound_session is not None:
                logging.getLogger(__name__).debug(
                    'Restoring session %s',
                    inbound_session.session_id,
                )
                connection.restore(inbound_session)
            else:
                logging.getLogger(__name__).debug('Opening a new session')
                connection.connect()
            return connection.session_context()
        finally:
            connection.close()
