from pathlib import Path

from ramzishare.config import GIB, Settings


def test_defaults():
    s = Settings.from_env({})
    assert s.port == 3000
    assert s.max_upload_bytes == GIB
    assert s.min_access_code_length == 3
    assert s.transport_timeout_seconds == 1800
    assert not s.is_production
    assert s.public_dir == Path('store') / 'public'


def test_from_env():
    s = Settings.from_env({
        'RAMZISHARE_APP_ENV': 'Production',
        'RAMZISHARE_PORT': '8080',
        'RAMZISHARE_STORAGE_DIR': '/srv/share',
        'RAMZISHARE_MAX_UPLOAD_BYTES': '524288000',
        'RAMZISHARE_LOG_LEVEL': '',
    })
    assert s.is_production
    assert s.port == 8080
    assert s.storage_dir == Path('/srv/share')
    assert s.max_upload_bytes == 500 * 1024 * 1024
    assert s.log_level == 'INFO'


def test_unprefixed_variables_are_ignored():
    s = Settings.from_env({'PORT': '9999', 'HOST': 'example.invalid', 'APP_ENV': 'production'})
    assert s.port == 3000
    assert s.host == '0.0.0.0'
    assert not s.is_production
