"""
Setup flow for LG TV integration.

:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import logging
from typing import Any

from const import DEFAULT_NAME, LgTvConfig
from errors import ConfigurationError
from ssap import SsapClient
from tv import LgTv
from ucapi import IntegrationSetupError, RequestUserInput, SetupError
from ucapi_framework import BaseSetupFlow

_LOG = logging.getLogger(__name__)

# The user has to accept the pairing prompt on the TV within this time
SETUP_TIMEOUT = 60000

_MANUAL_INPUT_SCHEMA = RequestUserInput(
    {"en": "LG TV Setup"},
    [
        {
            "id": "info",
            "label": {
                "en": "Setup your LG TV",
            },
            "field": {
                "label": {
                    "value": {
                        "en": (
                            "Please supply the IP address or Hostname of your LG TV. "
                            "Accept the pairing request shown on the TV to finish."
                        ),
                    }
                }
            },
        },
        {
            "field": {"text": {"value": ""}},
            "id": "address",
            "label": {
                "en": "IP Address",
            },
        },
        {
            "field": {"text": {"value": DEFAULT_NAME}},
            "id": "name",
            "label": {
                "en": "Name",
            },
        },
        {
            "field": {"checkbox": {"value": False}},
            "id": "secure",
            "label": {
                "en": "Use secure connection (newer webOS versions)",
            },
        },
    ],
)


def _checked(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


class LgTvSetupFlow(BaseSetupFlow[LgTvConfig]):
    """Setup flow handler for LG TV integration."""

    def get_manual_entry_form(self) -> RequestUserInput:
        """
        Get the manual entry form for LG TV setup.

        :return: RequestUserInput for manual entry
        """
        return _MANUAL_INPUT_SCHEMA

    async def query_device(
        self, input_values: dict[str, Any]
    ) -> RequestUserInput | LgTvConfig | SetupError:
        """
        Process user data response from the first setup process screen.

        Pairs with the TV so the stored configuration carries the client key.

        :param input_values: values of the manual entry form
        :return: the setup action on how to continue
        """
        address = (input_values.get("address") or "").strip()
        identifier = f"lgtv_{address.replace('.', '_')}"
        config = LgTvConfig(
            identifier=identifier,
            name=(input_values.get("name") or "").strip() or DEFAULT_NAME,
            address=address,
            secure=_checked(input_values.get("secure", False)),
        )

        try:
            config.validate()
        except ConfigurationError:
            return _MANUAL_INPUT_SCHEMA

        # if we are adding a new device: make sure it's not already configured
        if self._add_mode and self.config is not None and self.config.contains(identifier):
            _LOG.info("Skipping found device %s: already configured", identifier)
            return SetupError(IntegrationSetupError.OTHER)

        _LOG.debug("Connecting to LG TV at %s", address)
        client = SsapClient(
            address,
            secure=config.secure,
            timeout=SETUP_TIMEOUT,
            manifest=LgTv.manifest,
            log_id=config.name,
        )
        try:
            await client.connect()
            config.client_key = client.client_key
        except Exception as err:  # pylint: disable=broad-except
            _LOG.error("Setup error for LG TV at %s: %s", address, err)
            return SetupError(IntegrationSetupError.OTHER)
        finally:
            await client.close()

        _LOG.info("Paired with LG TV %s at %s", config.name, address)
        return config
