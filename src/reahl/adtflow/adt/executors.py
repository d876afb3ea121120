from reahl.adtflow.adt.responses import activation_body
from reahl.adtflow.adt.responses import check_run_body
from reahl.adtflow.adt.responses import creation_body
from reahl.adtflow.adt.responses import deletion_body
from reahl.adtflow.adt.responses import metadata_body
from reahl.adtflow.adt.responses import parse_activation_result
from reahl.adtflow.adt.responses import parse_check_run
from reahl.adtflow.adt.responses import parse_lock_result
from reahl.adtflow.adt.responses import parse_validation_result
from reahl.adtflow.workflow.errors import ErrorClassifier
from reahl.adtflow.workflow.errors import ErrorKind
from reahl.adtflow.workflow.errors import ErrorMessage
from reahl.adtflow.workflow.errors import RemoteCallFailed
from reahl.adtflow.workflow.registry import ObjectKindCapabilities
from reahl.adtflow.workflow.session import DomainException
from reahl.adtflow.workflow.steps import StepExecutor
from reahl.adtflow.workflow.steps import StepName
from reahl.adtflow.workflow.steps import StepOutcome


LOCK_RESULT_ACCEPT = (
    'application/vnd.sap.as+xml;charset=UTF-8;'
    'dataname=com.sap.adt.lock.result;q=0.8, '
    'application/vnd.sap.as+xml;charset=UTF-8;'
    'dataname=com.sap.adt.lock.result2;q=0.9'
)


class AdtStepExecutor(StepExecutor):
    def __init__(self, wiring, connection_factory, classifier=None):
        self.wiring = wiring
        self.connection_factory = connection_factory
        self.classifier = classifier or ErrorClassifier()

    def connection_for(self, session):
        connection = self.connection_factory()
        connection.restore(session)
        return connection

    def execute(self, descriptor, payload, session, lock_handle=None):
        connection = self.connection_for(session)
        try:
            try:
                outcome = self.perform(connection, descriptor, payload or {}, lock_handle)
            except RemoteCallFailed as error:
                outcome = StepOutcome.from_exception(
                    self.step_name,
                    error,
                    self.classifier,
                )
            return outcome, connection.session_context()
        finally:
            connection.close()

    def perform(self, connection, descriptor, payload, lock_handle):
        raise NotImplementedError()

    def description_for(self, descriptor, payload):
        return payload.get('description') or descriptor.name

    def transport_parameters(self, descriptor, parameters=None):
        parameters = dict(parameters or {})
        if descriptor.transport_request:
            parameters['corrNr'] = descriptor.transport_request
        return parameters

    def responsible_for(self, connection):
        return connection.configuration.user_name.upper()

    def language_for(self, connection):
        return connection.configuration.language


class AdtValidateExecutor(AdtStepExecutor):
    step_name = StepName.VALIDATE

    def perform(self, connection, descriptor, payload, lock_handle):
        parameters = {
            'objtype': self.wiring.adt_type,
            'objname': descriptor.name,
            'description': self.description_for(descriptor, payload),
        }
        if descriptor.package_name:
            parameters['packagename'] = descriptor.package_name
        if descriptor.parent_name:
            parameters['fugrname'] = descriptor.parent_name
        if payload.get('superclass'):
            parameters['superclass'] = payload['superclass'].upper()
        response = connection.request(
            'POST',
            self.wiring.validation_path,
            params=parameters,
            headers={'Accept': 'application/vnd.sap.as+xml'},
        )
        validation_result = parse_validation_result(response.text)
        if validation_result['valid']:
            return StepOutcome.succeeded(self.step_name, raw=validation_result)
        return StepOutcome.failed(
            self.step_name,
            self.classifier.classify_failure(response.status_code, response.text),
            raw=validation_result,
        )


class AdtCreateExecutor(AdtStepExecutor):
    step_name = StepName.CREATE

    def perform(self, connection, descriptor, payload, lock_handle):
        body = creation_body(
            self.wiring,
            descriptor,
            payload,
            self.description_for(descriptor, payload),
            self.responsible_for(connection),
            self.language_for(connection),
        )
        response = connection.request(
            'POST',
            self.wiring.collection_uri(descriptor),
            params=self.transport_parameters(descriptor),
            data=body,
            headers={
                'Content-Type': self.wiring.content_type,
                'Accept': self.wiring.content_type,
            },
        )
        return StepOutcome.succeeded(
            self.step_name,
            raw={
                'status': response.status_code,
                'uri': self.wiring.object_uri(descriptor),
            },
        )


class AdtLockExecutor(AdtStepExecutor):
    step_name = StepName.LOCK

    def perform(self, connection, descriptor, payload, lock_handle):
        response = connection.request(
            'POST',
            self.wiring.object_uri(descriptor),
            params={'_action': 'LOCK', 'accessMode': 'MODIFY'},
            headers={'Accept': LOCK_RESULT_ACCEPT},
        )
        lock_result = parse_lock_result(response.text)
        if not lock_result['lock_handle']:
            return StepOutcome.failed(
                self.step_name,
                ErrorMessage(
                    ErrorKind.UNKNOWN,
                    'Lock did not return a lock handle for %s.' % descriptor.name,
                ),
                raw=lock_result,
            )
        return StepOutcome.succeeded(
            self.step_name,
            raw=lock_result,
            lock_handle=lock_result['lock_handle'],
        )


class AdtUpdateExecutor(AdtStepExecutor):
    step_name = StepName.UPDATE

    def perform(self, connection, descriptor, payload, lock_handle):
        if self.wiring.source_based:
            return self.update_source(connection, descriptor, payload, lock_handle)
        return self.update_metadata(connection, descriptor, payload, lock_handle)

    def source_code_for(self, descriptor, payload):
        source_code = payload.get('source_code') or self.wiring.default_source(
            descriptor,
            self.description_for(descriptor, payload),
        )
        if not source_code:
            raise DomainException(
                'source_code is required to update %s %s.'
                % (descriptor.kind.value, descriptor.name)
            )
        return source_code

    def update_source(self, connection, descriptor, payload, lock_handle):
        source_code = self.source_code_for(descriptor, payload)
        response = connection.request(
            'PUT',
            self.wiring.source_uri(descriptor),
            params=self.transport_parameters(descriptor, {'lockHandle': lock_handle}),
            data=source_code,
            headers={'Content-Type': 'text/plain; charset=utf-8'},
        )
        return StepOutcome.succeeded(
            self.step_name,
            raw={'status': response.status_code, 'source_length': len(source_code)},
        )

    def update_metadata(self, connection, descriptor, payload, lock_handle):
        body = metadata_body(
            self.wiring,
            descriptor,
            payload,
            self.description_for(descriptor, payload),
            self.responsible_for(connection),
            self.language_for(connection),
        )
        response = connection.request(
            'PUT',
            self.wiring.object_uri(descriptor),
            params=self.transport_parameters(descriptor, {'lockHandle': lock_handle}),
            data=body,
            headers={
                'Content-Type': self.wiring.content_type,
                'Accept': self.wiring.content_type,
            },
        )
        return StepOutcome.succeeded(
            self.step_name,
            raw={'status': response.status_code},
        )


class AdtCheckExecutor(AdtStepExecutor):
    step_name = StepName.CHECK

    def perform(self, connection, descriptor, payload, lock_handle):
        response = connection.request(
            'POST',
            '/sap/bc/adt/checkruns',
            params={'reporters': 'abapCheckRun'},
            data=check_run_body(
                self.wiring.object_uri(descriptor),
                payload.get('check_version', 'inactive'),
            ),
            headers={
                'Content-Type': 'application/vnd.sap.adt.checkobjects+xml',
                'Accept': 'application/vnd.sap.adt.checkmessages+xml',
            },
        )
        check_result = parse_check_run(response.text)
        messages = [
            ErrorMessage(ErrorKind.VALIDATION_FAILED, entry['text'])
            for entry in check_result['errors']
        ] + [
            ErrorMessage(ErrorKind.VALIDATION_FAILED, entry['text'], severity='warning')
            for entry in check_result['warnings']
        ]
        if check_result['status'] == 'parse_error':
            messages.append(ErrorMessage(ErrorKind.UNKNOWN, check_result['message']))
        return StepOutcome(
            self.step_name,
            not check_result['has_errors'],
            messages=messages,
            raw=check_result,
        )


class AdtUnlockExecutor(AdtStepExecutor):
    step_name = StepName.UNLOCK

    def perform(self, connection, descriptor, payload, lock_handle):
        response = connection.request(
            'POST',
            self.wiring.object_uri(descriptor),
            params={'_action': 'UNLOCK', 'lockHandle': lock_handle},
        )
        return StepOutcome.succeeded(
            self.step_name,
            raw={'status': response.status_code},
        )


class AdtActivateExecutor(AdtStepExecutor):
    step_name = StepName.ACTIVATE

    def perform(self, connection, descriptor, payload, lock_handle):
        response = connection.request(
            'POST',
            '/sap/bc/adt/activation',
            params={'method': 'activate', 'preauditRequested': 'true'},
            data=activation_body(self.wiring.object_uri(descriptor), descriptor.name),
            headers={
                'Content-Type': 'application/vnd.sap.adt.activation+xml',
                'Accept': 'application/xml',
            },
        )
        activation_result = parse_activation_result(response.text)
        messages = [
            ErrorMessage(
                ErrorKind.VALIDATION_FAILED,
                message['text'],
                severity='error' if message['type'] in ('E', 'A') else 'warning',
            )
            for message in activation_result['messages']
            if message['type'] in ('E', 'A', 'W')
        ]
        return StepOutcome(
            self.step_name,
            activation_result['activated'],
            messages=messages,
            raw=activation_result,
        )


class AdtDeleteExecutor(AdtStepExecutor):
    step_name = StepName.DELETE

    def perform(self, connection, descriptor, payload, lock_handle):
        response = connection.request(
            'POST',
            '/sap/bc/adt/deletion/delete',
            data=deletion_body(
                self.wiring.object_uri(descriptor),
                descriptor.transport_request,
            ),
            headers={
                'Content-Type': 'application/vnd.sap.adt.deletion.request.v1+xml',
                'Accept': 'application/vnd.sap.adt.deletion.response.v1+xml',
            },
        )
        return StepOutcome.succeeded(
            self.step_name,
            raw={'status': response.status_code},
        )


def adt_capabilities_for(wiring, connection_factory, classifier=None):
    def executor(executor_class):
        return executor_class(wiring, connection_factory, classifier=classifier)

    return ObjectKindCapabilities(
        wiring.kind,
        validate=executor(AdtValidateExecutor),
        create=executor(AdtCreateExecutor),
        lock=executor(AdtLockExecutor),
        update=executor(AdtUpdateExecutor),
        check=executor(AdtCheckExecutor),
        unlock=executor(AdtUnlockExecutor),
        activate=executor(AdtActivateExecutor) if wiring.activatable else None,
        delete=executor(AdtDeleteExecutor),
    )
