"""
Wake-up control for the payment gateway's compute host.

The gateway runs on an EC2 instance that may be stopped between payments.
``wake`` starts it and blocks on the ``instance_running`` waiter, so a
successful result means the machine is up (the app on it may still be
booting; the health poll covers that).
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ..core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WakeResult:
    success: bool
    state: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False


def get_ec2_client(region: Optional[str] = None) -> Any:
    """Get configured boto3 client for EC2"""
    return boto3.client(
        "ec2",
        region_name=region or settings.aws_region,
        config=Config(retries={"max_attempts": 3, "mode": "standard"}),
    )


class GatewayHostController:
    def __init__(
        self,
        instance_id: Optional[str] = None,
        *,
        client: Any = None,
        poll_delay_s: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.instance_id = instance_id
        self._client = client
        self.poll_delay_s = poll_delay_s or settings.gateway_wake_poll_delay_s
        self.max_attempts = max_attempts or settings.gateway_wake_max_attempts

    @classmethod
    def from_settings(cls) -> "GatewayHostController":
        return cls(settings.gateway_instance_id)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_ec2_client()
        return self._client

    def wake(self) -> WakeResult:
        if not self.instance_id:
            logger.debug("gateway_wake_skipped: no instance configured")
            return WakeResult(success=True, skipped=True)

        try:
            response = self.client.start_instances(InstanceIds=[self.instance_id])
            state = _current_state(response)
            logger.info(
                "gateway_wake_requested",
                extra={"instance_id": self.instance_id, "state": state},
            )
            if state != "running":
                self.client.get_waiter("instance_running").wait(
                    InstanceIds=[self.instance_id],
                    WaiterConfig={"Delay": self.poll_delay_s, "MaxAttempts": self.max_attempts},
                )
        except (ClientError, BotoCoreError, WaiterError) as e:
            logger.error(
                "gateway_wake_failed",
                extra={"instance_id": self.instance_id, "error": str(e)},
            )
            return WakeResult(success=False, error=str(e))

        return WakeResult(success=True, state="running")


def _current_state(response: Any) -> Optional[str]:
    try:
        return response["StartingInstances"][0]["CurrentState"]["Name"]
    except (KeyError, IndexError, TypeError):
        return None
