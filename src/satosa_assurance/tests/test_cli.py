import io
import unittest
from pathlib import PurePath
from unittest.mock import patch

from satosa_assurance.cli import load_attributes, main


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.data_dir = PurePath(__file__).with_name('data')
        self.config = str(self.data_dir / 'dynamic_assurance.yaml')

    def run_main(self, *args: str):
        with patch('sys.stdout', new_callable=io.StringIO) as stdout, patch(
            'sys.stderr', new_callable=io.StringIO
        ) as stderr:
            res = main(list(args))
        return res, stdout.getvalue().splitlines(), stderr.getvalue()

    def test_load_attributes(self):
        attributes = load_attributes(self.data_dir / 'attributes.yaml')
        assert attributes == {
            'eduPersonAssurance': ['https://refeds.org/assurance/ID/unique'],
            'mail': ['user@example.org'],
        }

    def test_load_attributes_from_string_path(self):
        attributes = load_attributes(str(self.data_dir / 'no_attributes.yaml'))
        assert attributes == {'mail': ['user@example.org']}

    def test_passthrough(self):
        res, out, _ = self.run_main('--config', self.config, '--attributes', str(self.data_dir / 'attributes.yaml'))
        assert res == 0
        assert out == ['https://refeds.org/assurance/ID/unique']

    def test_remote_idp_tags(self):
        res, out, _ = self.run_main(
            '--config',
            self.config,
            '--attributes',
            str(self.data_dir / 'attributes.yaml'),
            '--idp',
            'https://idp.example.org/idp/shibboleth',
        )
        assert res == 0
        assert out == ['https://refeds.org/assurance/ID/unique', 'https://refeds.org/assurance/IAP/medium']

    def test_source_tags(self):
        res, out, _ = self.run_main(
            '--config', self.config, '--attributes', str(self.data_dir / 'no_attributes.yaml'), '--tag', 'edugain'
        )
        assert res == 0
        assert out == ['https://refeds.org/assurance/IAP/medium']

    def test_default(self):
        res, out, _ = self.run_main('--config', self.config, '--attributes', str(self.data_dir / 'no_attributes.yaml'))
        assert res == 0
        assert out == ['https://refeds.org/assurance/IAP/low']

    def test_invalid_config(self):
        res, out, err = self.run_main(
            '--config',
            str(self.data_dir / 'invalid_config.yaml'),
            '--attributes',
            str(self.data_dir / 'attributes.yaml'),
        )
        assert res == 1
        assert out == []
        assert "'attribute' should be a string" in err

    def test_missing_file(self):
        res, out, err = self.run_main(
            '--config', self.config, '--attributes', str(self.data_dir / 'does_not_exist.yaml')
        )
        assert res == 1
        assert 'Could not load' in err
