"""Adapters between the shadow sync contract and AWS IoT.

The shadow service itself is an external collaborator. This module only
wraps the boto3 ``iot-data`` and ``sts`` clients behind small async
interfaces and translates botocore failures into TransportError.
"""

import asyncio
import json
import logging
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from shadow_sensor_skill.errors import DeviceNotFoundError, TransportError

logger = logging.getLogger(__name__)


class ShadowClient(Protocol):
    """Write side of a shadow document, used on the device."""

    async def report(self, snapshot: dict[str, Any]) -> None: ...


class ShadowReader(Protocol):
    """Read side of a shadow document, used by the voice skill."""

    async def get_reported(self, thing_name: str) -> dict[str, Any]: ...


def _translate_client_error(error: ClientError, thing_name: str) -> TransportError:
    code = error.response.get("Error", {}).get("Code", "")
    if code == "ResourceNotFoundException":
        return DeviceNotFoundError(f"No shadow found for thing '{thing_name}'")
    return TransportError(f"Shadow request for '{thing_name}' failed: {code or error}")


class IotDataShadowClient:
    """Shadow access through the AWS IoT data plane.

    boto3 calls block, so each one runs in a worker thread bounded by
    ``timeout`` seconds. The worker thread itself is only stopped by the
    client's own socket timeouts, see ``client_config``.

    Attributes:
        iot_data: boto3 ``iot-data`` client
        thing_name: Thing the device reports to, None for read-only use
        timeout: Upper bound in seconds for one call
    """

    def __init__(self, iot_data: Any, thing_name: str | None = None, timeout: float = 10.0) -> None:
        self.iot_data = iot_data
        self.thing_name = thing_name
        self.timeout = timeout

    async def report(self, snapshot: dict[str, Any]) -> None:
        """Overwrite the reported keys of this device's shadow with ``snapshot``."""
        if self.thing_name is None:
            raise TransportError("Cannot report without a thing name")
        payload = json.dumps({"state": {"reported": snapshot}})
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.iot_data.update_thing_shadow, thingName=self.thing_name, payload=payload),
                timeout=self.timeout,
            )
        except ClientError as e:
            raise _translate_client_error(e, self.thing_name) from e
        except (BotoCoreError, TimeoutError) as e:
            raise TransportError(f"Shadow update for '{self.thing_name}' failed: {e!r}") from e
        logger.debug("Reported %s for %s", snapshot, self.thing_name)

    async def get_reported(self, thing_name: str) -> dict[str, Any]:
        """Fetch the last reported state of a thing.

        Returns:
            The ``state.reported`` section, empty if the device never reported

        Raises:
            DeviceNotFoundError: If the thing has no shadow
            TransportError: On any other service or network failure
        """
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.iot_data.get_thing_shadow, thingName=thing_name),
                timeout=self.timeout,
            )
            document = json.loads(response["payload"].read())
        except ClientError as e:
            raise _translate_client_error(e, thing_name) from e
        except (BotoCoreError, TimeoutError) as e:
            raise TransportError(f"Shadow fetch for '{thing_name}' failed: {e!r}") from e
        except (KeyError, ValueError) as e:
            raise TransportError(f"Malformed shadow document for '{thing_name}'") from e
        state = document.get("state", {}) if isinstance(document, dict) else None
        if not isinstance(state, dict):
            raise TransportError(f"Malformed shadow document for '{thing_name}'")
        reported = state.get("reported", {})
        return reported if isinstance(reported, dict) else {}


async def assume_role_credentials(
    sts: Any, role_arn: str, session_name: str = "Session", timeout: float = 10.0
) -> dict[str, str]:
    """Obtain short-lived credentials for shadow read access.

    Args:
        sts: boto3 ``sts`` client
        role_arn: Role granting access to the IoT data plane
        session_name: Role session name
        timeout: Upper bound in seconds for the call

    Returns:
        Keyword arguments for ``boto3.client`` carrying the temporary credentials

    Raises:
        TransportError: If the role cannot be assumed
    """
    try:
        response = await asyncio.wait_for(
            asyncio.to_thread(sts.assume_role, RoleArn=role_arn, RoleSessionName=session_name),
            timeout=timeout,
        )
    except (BotoCoreError, ClientError, TimeoutError) as e:
        raise TransportError(f"Could not assume role {role_arn}: {e!r}") from e
    credentials = response["Credentials"]
    return {
        "aws_access_key_id": credentials["AccessKeyId"],
        "aws_secret_access_key": credentials["SecretAccessKey"],
        "aws_session_token": credentials["SessionToken"],
    }


def client_config(timeout: float) -> Config:
    """botocore settings shared by every client: a single attempt per call, bounded by ``timeout``."""
    # AIDEV-NOTE: total_max_attempts=1 disables botocore's built-in retries. A failed
    # call surfaces as TransportError and the caller decides what happens next.
    return Config(retries={"total_max_attempts": 1}, connect_timeout=timeout, read_timeout=timeout)


def create_iot_data_client(
    region: str, endpoint: str | None = None, timeout: float = 10.0, **credentials: str
) -> Any:
    """Create a boto3 IoT data plane client for an account specific endpoint."""
    kwargs: dict[str, Any] = {"region_name": region, "config": client_config(timeout), **credentials}
    if endpoint:
        kwargs["endpoint_url"] = endpoint if endpoint.startswith("https://") else f"https://{endpoint}"
    return boto3.client("iot-data", **kwargs)


def create_sts_client(region: str, timeout: float = 10.0) -> Any:
    return boto3.client("sts", region_name=region, config=client_config(timeout))
