import unittest
from types import SimpleNamespace

import pytest
from satosa.context import Context
from satosa.exception import SATOSAConfigurationError
from satosa.internal import AuthenticationInformation, InternalData
from satosa.state import State

from satosa_assurance.dynamic_assurance import DynamicAssurance, get_metadata
from satosa_assurance.exceptions import ConfigError

LOW = 'https://refeds.org/assurance/IAP/low'
MEDIUM = 'https://refeds.org/assurance/IAP/medium'

IDP = 'https://idp.example.org/idp/shibboleth'


class TestDynamicAssurance(unittest.TestCase):
    def create_service(self, config):
        service = DynamicAssurance(
            config=config, internal_attributes={}, name='DynamicAssurance', base_url='https://satosa.example.com'
        )
        service.next = lambda ctx, data: data
        return service

    def create_data(self, attributes, issuer=IDP):
        data = InternalData(auth_info=AuthenticationInformation(issuer=issuer))
        data.attributes = attributes
        return data

    def setUp(self):
        self.context = Context()
        self.context.state = State()

    def test_exact_match(self):
        service = self.create_service({})
        data = service.process(self.context, self.create_data({'eduPersonAssurance': ['1.2.840.113612.5.2.2.1']}))
        assert data.attributes['eduPersonAssurance'] == [LOW, MEDIUM]

    def test_nothing_resolved(self):
        service = self.create_service({})
        data = service.process(self.context, self.create_data({'mail': ['user@example.org']}))
        assert data.attributes == {'mail': ['user@example.org']}

    def test_default(self):
        service = self.create_service({'defaultAssurance': [LOW]})
        data = service.process(self.context, self.create_data({'mail': ['user@example.org']}))
        assert data.attributes['eduPersonAssurance'] == [LOW]

    def test_idp_tags(self):
        config = {
            'idpTagMap': {'edugain': [MEDIUM]},
            'idpTags': {IDP: ['edugain']},
        }
        service = self.create_service(config)
        data = service.process(self.context, self.create_data({'voPersonVerifiedEmail': ['user@example.org']}))
        assert data.attributes['eduPersonAssurance'] == [LOW, MEDIUM]

    def test_idp_tags_other_issuer(self):
        config = {
            'idpTagMap': {'edugain': [MEDIUM]},
            'idpTags': {IDP: ['edugain']},
        }
        service = self.create_service(config)
        data = service.process(self.context, self.create_data({}, issuer='https://other.example.org/idp'))
        assert 'eduPersonAssurance' not in data.attributes

    def test_output_attribute(self):
        service = self.create_service({'attribute': 'assurance'})
        data = service.process(self.context, self.create_data({'voPersonVerifiedEmail': ['user@example.org']}))
        assert data.attributes['assurance'] == [LOW]
        assert 'eduPersonAssurance' not in data.attributes

    def test_invalid_configuration(self):
        with pytest.raises(ConfigError):
            self.create_service({'attribute': 1})

    def test_invalid_idp_tags(self):
        with pytest.raises(SATOSAConfigurationError):
            self.create_service({'idpTags': ['edugain']})


class TestGetMetadata(unittest.TestCase):
    def test_no_metadata_store(self):
        context = Context()
        assert list(get_metadata(context)) == []

    def test_not_metadata(self):
        context = Context()
        context.decorate(Context.KEY_METADATA_STORE, SimpleNamespace(metadata={'inline': object()}))
        assert list(get_metadata(context)) == []
