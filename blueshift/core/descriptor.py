"""Deployment descriptor construction.

Turns a raw inbound request into an immutable ``DeploymentDescriptor``:
content-type dispatch, environment lookup, credential resolution, body
parsing and correlation id assignment.
"""

import json
from uuid import uuid4

from pydantic import ValidationError

from blueshift.config import DeployConfig, EnvironmentConfig
from blueshift.core.exceptions import (
    BasicAuthHeaderNotFoundError,
    EmptyRequestBodyError,
    EnvironmentNotFoundError,
    InvalidContentTypeError,
    InvalidRequestBodyError,
    MissingParameterError,
)
from blueshift.models.deployment import (
    Authorization,
    CFContext,
    ContentType,
    DeploymentDescriptor,
    DeploymentRequest,
)
from blueshift.models.requests import DeployRequestBody, PutRequestBody
from blueshift.utils.logging import get_logger

ZIP_CONTENT_TYPES = frozenset(
    {"application/zip", "application/x-zip-compressed", "application/octet-stream"}
)
JSON_CONTENT_TYPES = frozenset({"application/json"})

REQUIRED_PROPERTIES = ("artifact_url",)


def parse_content_type(content_type: str | None) -> ContentType:
    """Map a MIME type onto JSON or ZIP mode."""
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if mime in JSON_CONTENT_TYPES:
        return ContentType.JSON
    if mime in ZIP_CONTENT_TYPES:
        return ContentType.ZIP
    raise InvalidContentTypeError(content_type)


class DescriptorBuilder:
    """Builds deployment descriptors against the process configuration."""

    def __init__(self, config: DeployConfig):
        self.config = config
        self.logger = get_logger("descriptor")

    def build(self, request: DeploymentRequest) -> DeploymentDescriptor:
        """Validate and resolve a request.

        Raises:
            InvalidContentTypeError: Content type is not JSON or an archive
            EmptyRequestBodyError: Archive request without a body
            EnvironmentNotFoundError: Environment is not configured
            BasicAuthHeaderNotFoundError: Credentials required but missing
            InvalidRequestBodyError: JSON body cannot be decoded
            MissingParameterError: JSON body lacks ``artifact_url``
        """
        content_type = parse_content_type(request.content_type)

        environment = self.config.get_environment(request.environment)
        if environment is None:
            raise EnvironmentNotFoundError(request.environment)

        authorization = self._resolve_authorization(request, environment)
        uuid = request.uuid or str(uuid4())

        body = DeployRequestBody(artifact_url="")
        if content_type == ContentType.JSON:
            body = self._parse_json_body(request)
        elif _is_empty(request.body):
            raise EmptyRequestBodyError()

        descriptor = DeploymentDescriptor(
            uuid=uuid,
            cf_context=CFContext(
                environment=request.environment,
                organization=request.organization,
                space=request.space,
                application=request.application,
            ),
            content_type=content_type,
            body=request.body,
            artifact_url=body.artifact_url,
            manifest=body.manifest,
            data=body.data,
            authorization=authorization,
            domain=environment.domain,
            skip_ssl=environment.skip_ssl,
            custom_params=environment.custom_params,
            environment_name=environment.name,
            instances=environment.instances,
        )

        self.logger.debug(
            "descriptor.built",
            uuid=uuid,
            environment=environment.name,
            org=request.organization,
            space=request.space,
            app=request.application,
            content_type=content_type.value,
        )
        return descriptor

    def build_state_change(
        self, request: DeploymentRequest
    ) -> tuple[DeploymentDescriptor, str]:
        """Resolve a start/stop request into a descriptor and the desired state.

        The body is optional JSON with ``state`` and ``data``.
        """
        environment = self.config.get_environment(request.environment)
        if environment is None:
            raise EnvironmentNotFoundError(request.environment)

        authorization = self._resolve_authorization(request, environment)

        body = PutRequestBody()
        if not _is_empty(request.body):
            body = self._parse_put_body(request)

        descriptor = DeploymentDescriptor(
            uuid=request.uuid or str(uuid4()),
            cf_context=CFContext(
                environment=request.environment,
                organization=request.organization,
                space=request.space,
                application=request.application,
            ),
            content_type=ContentType.JSON,
            body=request.body,
            data=body.data,
            authorization=authorization,
            domain=environment.domain,
            skip_ssl=environment.skip_ssl,
            custom_params=environment.custom_params,
            environment_name=environment.name,
            instances=environment.instances,
        )
        return descriptor, body.state

    def _resolve_authorization(
        self, request: DeploymentRequest, environment: EnvironmentConfig
    ) -> Authorization:
        if request.username or request.password:
            return Authorization(username=request.username, password=request.password)

        if environment.authenticate:
            raise BasicAuthHeaderNotFoundError()

        return Authorization(username=self.config.username, password=self.config.password)

    def _parse_json_body(self, request: DeploymentRequest) -> DeployRequestBody:
        payload = _read_json(request)

        missing = [name for name in REQUIRED_PROPERTIES if not payload.get(name)]
        if missing:
            raise MissingParameterError(missing)

        try:
            return DeployRequestBody.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequestBodyError(str(e)) from e

    def _parse_put_body(self, request: DeploymentRequest) -> PutRequestBody:
        try:
            return PutRequestBody.model_validate(_read_json(request))
        except ValidationError as e:
            raise InvalidRequestBodyError(str(e)) from e


def _read_json(request: DeploymentRequest) -> dict:
    raw = request.body.read()
    if request.body.seekable():
        request.body.seek(0)

    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestBodyError(str(e)) from e

    if not isinstance(payload, dict):
        raise InvalidRequestBodyError("expected a JSON object")
    return payload


def _is_empty(body) -> bool:
    if not body.seekable():
        return False
    position = body.tell()
    body.seek(0, 2)
    end = body.tell()
    body.seek(position)
    return end == position
