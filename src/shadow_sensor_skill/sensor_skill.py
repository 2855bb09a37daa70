"""Core implementation of the Shadow Sensor Skill.

This module contains the voice skill that answers questions like
"what's the temperature in the garage?" by reading the last reported state
of the matching device shadow, validating the value and phrasing it as a
spoken sentence.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import jinja2
from botocore.exceptions import BotoCoreError
from pydantic import BaseModel, ConfigDict, Field

from shadow_sensor_skill.config import SkillConfig
from shadow_sensor_skill.errors import (
    ConfigurationError,
    DataUnavailableError,
    DeviceNotFoundError,
    OutOfRangeError,
    SensorSkillError,
    TransportError,
)
from shadow_sensor_skill.readings import process_measurement_value
from shadow_sensor_skill.shadow import (
    IotDataShadowClient,
    ShadowReader,
    assume_role_credentials,
    create_iot_data_client,
    create_sts_client,
)

MEASUREMENT_INTENT = "GetMeasurementForLocationIntent"


class Action(Enum):
    """Outcomes of a measurement query.

    Each action is rendered through its own template named
    ``{action_name}.j2``.
    """

    MEASUREMENT_QUERY = "measurement_query"
    LOCATION_NOT_FOUND = "location_not_found"
    NO_DATA = "no_data"
    UNUSUAL_READING = "unusual_reading"
    DEVICE_NOT_FOUND = "device_not_found"
    READING_FAILED = "reading_failed"


class Parameters(BaseModel):
    """Parameters of one measurement query and its result.

    Attributes:
        action: Outcome of the query, selects the response template
        location: Spoken location, lower case
        measurement: Spoken measurement name, lower case
        value: Formatted reading once validated
        unit: Unit of the reading
    """

    action: Action = Action.MEASUREMENT_QUERY
    location: str
    measurement: str
    value: str | None = None
    unit: str = ""


class Slot(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    value: str | None = None


class Intent(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    slots: dict[str, Slot] = Field(default_factory=dict)


class Request(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    intent: Intent | None = None
    reason: str | None = None


class RequestEnvelope(BaseModel):
    """The parts of a voice platform request the skill reads."""

    model_config = ConfigDict(extra="allow")

    version: str = "1.0"
    request: Request


class SkillResponse(BaseModel):
    """Spoken answer plus optional card, reprompt and session flag."""

    speech: str | None = None
    card_title: str | None = None
    card_content: str | None = None
    reprompt: str | None = None
    should_end_session: bool | None = None

    def to_envelope(self) -> dict[str, Any]:
        """Serialize to the voice platform's response format."""
        response: dict[str, Any] = {}
        if self.speech is not None:
            response["outputSpeech"] = {"type": "PlainText", "text": self.speech}
        if self.card_title is not None:
            response["card"] = {"type": "Simple", "title": self.card_title, "content": self.card_content or ""}
        if self.reprompt is not None:
            response["reprompt"] = {"outputSpeech": {"type": "PlainText", "text": self.reprompt}}
        if self.should_end_session is not None:
            response["shouldEndSession"] = self.should_end_session
        return {"version": "1.0", "response": response}


ShadowReaderFactory = Callable[[], Awaitable[ShadowReader]]


class SensorSkill:
    """Voice skill answering sensor queries from device shadows.

    The skill is stateless between requests: every query resolves the
    location, fetches fresh credentials and re-reads the shadow. Any failure
    is turned into a spoken response, nothing is raised to the caller.

    Attributes:
        config: Skill configuration with location mapping and measurement ranges
        template_env: Jinja2 environment for response generation
        action_to_template: Mapping of actions to their Jinja2 templates
        shadow_reader_factory: Creates a shadow reader with fresh credentials
        intent_handlers: Mapping of intent names to their handlers
    """

    def __init__(
        self,
        config_obj: SkillConfig,
        template_env: jinja2.Environment,
        shadow_reader_factory: ShadowReaderFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config_obj
        self.template_env = template_env
        self.shadow_reader_factory = shadow_reader_factory or self._create_shadow_reader
        self.logger = logger or logging.getLogger(__name__)
        self.action_to_template: dict[Action, jinja2.Template] = {}
        # AIDEV-NOTE: Intent name to handler. Unknown intents are rejected in dispatch and end up
        # in the catch-all error response of process_request.
        self.intent_handlers: dict[str, Callable[[RequestEnvelope], Awaitable[SkillResponse]]] = {
            MEASUREMENT_INTENT: self.handle_measurement_intent,
            "AMAZON.HelpIntent": self.handle_help,
            "AMAZON.CancelIntent": self.handle_stop,
            "AMAZON.StopIntent": self.handle_stop,
            "AMAZON.FallbackIntent": self.handle_fallback,
            "AMAZON.NavigateHomeIntent": self.handle_launch,
        }

    def _load_templates(self) -> None:
        """Load Jinja2 templates for response generation.

        Templates follow the naming convention {action_name}.j2
        (e.g. measurement_query.j2). A missing template is logged and the
        affected action falls back to a generic answer.
        """
        for action in Action:
            try:
                self.action_to_template[action] = self.template_env.get_template(f"{action.name.lower()}.j2")
            except jinja2.TemplateNotFound as e:
                self.logger.error("Failed to load template: %s", e)
        self.logger.debug("Templates loaded: %s", [action.name for action in self.action_to_template])

    async def skill_preparations(self) -> None:
        self._load_templates()

    async def _create_shadow_reader(self) -> ShadowReader:
        """Create a shadow reader, assuming the IoT access role first if one is configured."""
        # AIDEV-NOTE: Called once per query. Credentials and clients are never cached between requests.
        credentials: dict[str, str] = {}
        try:
            if self.config.iot_access_role_arn:
                sts = create_sts_client(self.config.aws_region, self.config.request_timeout)
                credentials = await assume_role_credentials(
                    sts,
                    self.config.iot_access_role_arn,
                    self.config.role_session_name,
                    self.config.request_timeout,
                )
            iot_data = create_iot_data_client(
                self.config.aws_region, self.config.iot_endpoint, self.config.request_timeout, **credentials
            )
        except BotoCoreError as e:
            raise TransportError(f"Could not create IoT data client: {e!r}") from e
        return IotDataShadowClient(iot_data, timeout=self.config.request_timeout)

    def get_parameters(self, envelope: RequestEnvelope) -> Parameters:
        """Extract location and measurement from the intent slots.

        Raises:
            ValueError: If a slot is missing or empty
        """
        slots = envelope.request.intent.slots if envelope.request.intent else {}
        values = {}
        for name in ("measurement", "location"):
            slot = slots.get(name)
            if slot is None or not slot.value:
                raise ValueError(f"Missing slot '{name}'")
            values[name] = slot.value.strip().lower()
        return Parameters(**values)

    async def fetch_reported_state(self, thing_name: str) -> dict[str, Any]:
        reader = await self.shadow_reader_factory()
        reported = await reader.get_reported(thing_name)
        self.logger.debug("Reported state of %s: %s", thing_name, reported)
        return reported

    async def query_measurement(self, params: Parameters) -> Parameters:
        """Resolve, fetch and validate the requested reading.

        Sets ``params.action`` to the outcome of the query and, on success,
        ``params.value`` and ``params.unit``.
        """
        try:
            thing_name = self.config.resolve_location(params.location)
        except ConfigurationError:
            params.action = Action.LOCATION_NOT_FOUND
            return params

        try:
            measurement, measurement_config = self.config.resolve_measurement(params.measurement)
            reported = await self.fetch_reported_state(thing_name)
            if measurement_config.shadow_key not in reported:
                raise DataUnavailableError(params.measurement)
            params.value = process_measurement_value(
                reported[measurement_config.shadow_key], measurement.value, measurement_config
            )
            params.unit = measurement_config.unit
            params.action = Action.MEASUREMENT_QUERY
        except DeviceNotFoundError as e:
            self.logger.error("Error reading sensor data: %s", e)
            params.action = Action.DEVICE_NOT_FOUND
        except OutOfRangeError as e:
            self.logger.error("Error reading sensor data: %s", e)
            params.action = Action.UNUSUAL_READING
        except DataUnavailableError as e:
            self.logger.error("Error reading sensor data: %s", e)
            params.action = Action.NO_DATA
        except SensorSkillError as e:
            self.logger.error("Error reading sensor data: %s", e)
            params.action = Action.READING_FAILED
        return params

    def get_answer(self, params: Parameters) -> str:
        template = self.action_to_template.get(params.action)
        if template:
            return template.render(params=params)

        self.logger.error("No template found for action %s", params.action)
        return "Sorry, I couldn't process your request"

    async def handle_measurement_intent(self, envelope: RequestEnvelope) -> SkillResponse:
        params = self.get_parameters(envelope)
        params = await self.query_measurement(params)
        speech = self.get_answer(params)
        if params.action is Action.MEASUREMENT_QUERY:
            card_title = f"{params.location} {params.measurement}"
        elif params.action is Action.LOCATION_NOT_FOUND:
            card_title = "Location Not Found"
        else:
            card_title = "Error"
        return SkillResponse(speech=speech, card_title=card_title, card_content=speech)

    async def handle_launch(self, envelope: RequestEnvelope) -> SkillResponse:  # noqa: ARG002
        launch = self.config.messages.launch
        return SkillResponse(speech=launch, reprompt=launch, card_title=self.config.skill_name, card_content=launch)

    async def handle_help(self, envelope: RequestEnvelope) -> SkillResponse:  # noqa: ARG002
        text = self.config.messages.help
        return SkillResponse(speech=text, reprompt=text, card_title="Help", card_content=text)

    async def handle_stop(self, envelope: RequestEnvelope) -> SkillResponse:  # noqa: ARG002
        text = self.config.messages.stop
        return SkillResponse(speech=text, card_title="Goodbye", card_content=text, should_end_session=True)

    async def handle_fallback(self, envelope: RequestEnvelope) -> SkillResponse:  # noqa: ARG002
        text = self.config.messages.fallback
        return SkillResponse(
            speech=text, reprompt=self.config.messages.help, card_title="I Didn't Understand", card_content=text
        )

    def error_response(self) -> SkillResponse:
        text = self.config.messages.error
        return SkillResponse(speech=text, reprompt=text, card_title="Error", card_content=text)

    async def dispatch(self, envelope: RequestEnvelope) -> SkillResponse:
        """Route a request to its handler.

        Raises:
            ValueError: If no handler accepts the request
        """
        request = envelope.request
        if request.type == "LaunchRequest":
            return await self.handle_launch(envelope)
        if request.type == "SessionEndedRequest":
            self.logger.info("Session ended with reason: %s", request.reason)
            return SkillResponse()
        if request.type == "IntentRequest" and request.intent is not None:
            handler = self.intent_handlers.get(request.intent.name)
            if handler is not None:
                return await handler(envelope)
            raise ValueError(f"No handler for intent {request.intent.name}")
        raise ValueError(f"No handler for request type {request.type}")

    async def process_request(self, event: dict[str, Any]) -> dict[str, Any]:
        """Answer one voice platform request.

        Main entry point of the skill. Logs the request and the response and
        converts any unhandled failure into the generic error answer.

        Args:
            event: Raw request envelope from the voice platform

        Returns:
            Response envelope for the voice platform
        """
        self.logger.info("Incoming request: %s", json.dumps(event, default=str))
        try:
            envelope = RequestEnvelope.model_validate(event)
            response = await self.dispatch(envelope)
        except Exception:
            self.logger.exception("Error processed")
            response = self.error_response()
        result = response.to_envelope()
        self.logger.info("Outgoing response: %s", json.dumps(result, ensure_ascii=False))
        return result
