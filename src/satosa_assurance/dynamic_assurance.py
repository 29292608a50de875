import logging
from collections.abc import Generator, Mapping
from typing import Any

import satosa.context
import satosa.internal
from saml2.mdstore import MetaData
from satosa.context import Context
from satosa.micro_services.base import ResponseMicroService

from satosa_assurance.config import load_idp_tags, load_rule_configuration
from satosa_assurance.metadata import Saml2MetadataLookup, StaticMetadataLookup
from satosa_assurance.resolver import SessionState, resolve

logger = logging.getLogger(__name__)


def get_metadata(context: satosa.context.Context) -> Generator[MetaData, None, None]:
    _mds = context.get_decoration(Context.KEY_METADATA_STORE)
    if _mds is None:
        return
    for _md_name, _metadata in _mds.metadata.items():
        if not isinstance(_metadata, MetaData):
            logger.debug(f'Element {_md_name} was not MetaData ({type(_metadata)})')
            continue
        yield _metadata


class DynamicAssurance(ResponseMicroService):
    """
    Set eduPersonAssurance based on the attributes released by the IdP and the tags of the IdP.

    The configured rules are merged with the built-in rules, see satosa_assurance.config.
    Attribute names are SATOSA internal attribute names.

    Example configuration:

      ```yaml
      module: satosa_assurance.dynamic_assurance.DynamicAssurance
      name: DynamicAssurance
      config:
        attribute: eduPersonAssurance
        attributeMap:
          eduPersonEntitlement:
            urn:mace:example.org:verified:
              - https://refeds.org/assurance/IAP/medium
        idpTagMap:
          edugain:
            - https://refeds.org/assurance/IAP/medium
        defaultAssurance:
          - https://refeds.org/assurance/IAP/low
        minAssurance:
          - https://refeds.org/assurance/IAP/low
        # tags per IdP, added to the entity categories and assurance certifications
        # found in the metadata
        idpTags:
          https://idp.example.org/idp/shibboleth:
            - edugain
      ```
    """

    def __init__(self, config: Mapping[str, Any], internal_attributes: dict[str, Any], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        config = config or {}
        self.rules = load_rule_configuration(config)
        self.static_metadata = StaticMetadataLookup(load_idp_tags(config.get('idpTags')))
        logger.info('DynamicAssurance is active')
        logger.debug(f'Rule configuration: {self.rules!r}')

    def process(
        self, context: satosa.context.Context, data: satosa.internal.InternalData,
    ) -> satosa.internal.InternalData:
        issuer = data.auth_info.issuer if data.auth_info else None
        state = SessionState(attributes=data.attributes, source_idp=issuer)
        metadata = Saml2MetadataLookup(get_metadata(context), fallback=self.static_metadata)
        assurance = resolve(self.rules, state, metadata)
        logger.info(f'Resolved assurance for issuer {issuer}: {assurance}')
        return super().process(context, data)
