"""
Pass the AuthnContextClassRef through the proxy.

SPAuthnContextClassRef saves the AuthnContextClassRef received from the upstream IdP
in an attribute, IdPAuthnContextClassRef sets the AuthnContextClassRef of the response
sent to the SP from an attribute.
"""

import logging
from collections.abc import Mapping
from typing import Any

import satosa.context
import satosa.internal
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError
from satosa.micro_services.base import ResponseMicroService

from satosa_assurance.exceptions import ConfigError

logger = logging.getLogger(__name__)

SP_AUTHN_CONTEXT_ATTRIBUTE = 'sp:AuthnContext'

REFEDS_SFA = 'https://refeds.org/profile/sfa'
REFEDS_MFA = 'https://refeds.org/profile/mfa'


class SPAuthnContextConfig(BaseModel):
    attribute: StrictStr = SP_AUTHN_CONTEXT_ATTRIBUTE


class IdPAuthnContextConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    attribute: StrictStr
    whitelist: list[StrictStr] = Field(default_factory=lambda: [REFEDS_SFA, REFEDS_MFA])
    source_attribute: StrictStr = Field(default=SP_AUTHN_CONTEXT_ATTRIBUTE, alias='sourceAttribute')


class SPAuthnContextClassRef(ResponseMicroService):
    """
    Save the AuthnContextClassRef received from the upstream IdP in an attribute.

    Example configuration:

      ```yaml
      module: satosa_assurance.authn_context.SPAuthnContextClassRef
      name: SPAuthnContextClassRef
      config:
        attribute: sp:AuthnContext
      ```
    """

    def __init__(self, config: Mapping[str, Any], internal_attributes: dict[str, Any], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        try:
            parsed_config = SPAuthnContextConfig.model_validate(config or {})
        except ValidationError as e:
            raise ConfigError(f'The configuration for this plugin is not valid: {e}')
        self.attribute = parsed_config.attribute

    def process(
        self, context: satosa.context.Context, data: satosa.internal.InternalData,
    ) -> satosa.internal.InternalData:
        authn_context = data.auth_info.auth_class_ref if data.auth_info else None
        if authn_context:
            logger.debug(f'Saving upstream AuthnContextClassRef {authn_context} in attribute {self.attribute}')
            data.attributes[self.attribute] = [authn_context]
        return super().process(context, data)


class IdPAuthnContextClassRef(ResponseMicroService):
    """
    Set the AuthnContextClassRef in the response from the value of an attribute.

    A whitelisted value of attribute is used if there is one, otherwise the
    AuthnContextClassRef saved by SPAuthnContextClassRef.

    Example configuration:

      ```yaml
      module: satosa_assurance.authn_context.IdPAuthnContextClassRef
      name: IdPAuthnContextClassRef
      config:
        attribute: eduPersonAssurance
        whitelist:
          - https://refeds.org/profile/sfa
          - https://refeds.org/profile/mfa
        sourceAttribute: sp:AuthnContext
      ```
    """

    def __init__(self, config: Mapping[str, Any], internal_attributes: dict[str, Any], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        try:
            parsed_config = IdPAuthnContextConfig.model_validate(config or {})
        except ValidationError as e:
            raise ConfigError(f'The configuration for this plugin is not valid: {e}')
        self.attribute = parsed_config.attribute
        self.whitelist = parsed_config.whitelist
        self.source_attribute = parsed_config.source_attribute

    def get_authn_context(self, attributes: Mapping[str, list[str]]) -> str | None:
        for value in attributes.get(self.attribute) or []:
            if value in self.whitelist:
                return value
        saved = attributes.get(self.source_attribute)
        if saved:
            return saved[0]
        return None

    def process(
        self, context: satosa.context.Context, data: satosa.internal.InternalData,
    ) -> satosa.internal.InternalData:
        authn_context = self.get_authn_context(data.attributes)
        if authn_context:
            logger.info(f'Setting AuthnContextClassRef to {authn_context}')
            data.auth_info.auth_class_ref = authn_context
        return super().process(context, data)
