import unittest

from satosa_assurance.metadata import IdpDescriptor, Saml2MetadataLookup, StaticMetadataLookup

IDP = 'https://idp.example.org/idp/shibboleth'
OTHER_IDP = 'https://other.example.org/idp'

RANDS = 'http://refeds.org/category/research-and-scholarship'
SIRTFI = 'https://refeds.org/sirtfi'


class FakeMetaData:
    def __init__(self, entities):
        self.entities = entities

    def entity_categories(self, entity_id):
        return self.entities[entity_id]['entity_categories']

    def assurance_certifications(self, entity_id):
        yield from self.entities[entity_id]['assurance_certifications']


class TestStaticMetadataLookup(unittest.TestCase):
    def test_resolve(self):
        lookup = StaticMetadataLookup({IDP: ['edugain', 'swamid']})
        assert lookup.resolve(IDP) == IdpDescriptor(entity_id=IDP, tags=frozenset(['edugain', 'swamid']))

    def test_unknown(self):
        lookup = StaticMetadataLookup({IDP: ['edugain']})
        assert lookup.resolve(OTHER_IDP) is None

    def test_no_tags(self):
        assert StaticMetadataLookup().resolve(IDP) is None


class TestSaml2MetadataLookup(unittest.TestCase):
    def setUp(self):
        self.metadata = FakeMetaData({IDP: {'entity_categories': [RANDS], 'assurance_certifications': [SIRTFI]}})

    def test_resolve(self):
        lookup = Saml2MetadataLookup([self.metadata])
        assert lookup.resolve(IDP) == IdpDescriptor(entity_id=IDP, tags=frozenset([RANDS, SIRTFI]))

    def test_unknown(self):
        lookup = Saml2MetadataLookup([self.metadata])
        assert lookup.resolve(OTHER_IDP) is None

    def test_several_sources(self):
        other = FakeMetaData(
            {IDP: {'entity_categories': ['https://example.org/category'], 'assurance_certifications': []}}
        )
        lookup = Saml2MetadataLookup([other, FakeMetaData({}), self.metadata])
        assert lookup.resolve(IDP).tags == frozenset([RANDS, SIRTFI, 'https://example.org/category'])

    def test_fallback(self):
        lookup = Saml2MetadataLookup([self.metadata], fallback=StaticMetadataLookup({IDP: ['edugain']}))
        assert lookup.resolve(IDP).tags == frozenset([RANDS, SIRTFI, 'edugain'])

    def test_fallback_only(self):
        lookup = Saml2MetadataLookup([], fallback=StaticMetadataLookup({OTHER_IDP: ['edugain']}))
        assert lookup.resolve(OTHER_IDP) == IdpDescriptor(entity_id=OTHER_IDP, tags=frozenset(['edugain']))
        assert lookup.resolve(IDP) is None
