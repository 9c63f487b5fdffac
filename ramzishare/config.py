"""Runtime settings, read from the environment."""
import logging
import os
from pathlib import Path

from pydantic import BaseModel

GIB = 1024 * 1024 * 1024

ENV_PREFIX = 'RAMZISHARE_'

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


class Settings(BaseModel):
    app_env: str = 'development'
    host: str = '0.0.0.0'
    port: int = 3000
    storage_dir: Path = Path('store')
    max_upload_bytes: int = GIB
    min_access_code_length: int = 3
    # longest pause allowed while an upload body is arriving
    transport_timeout_seconds: float = 30 * 60
    client_dist_dir: Path = Path('dist')
    fallback_pages_dir: Path = Path('.')
    log_level: str = 'INFO'

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == 'production'

    @property
    def public_dir(self) -> Path:
        return self.storage_dir / 'public'

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        values = {}
        for field in cls.model_fields:
            raw = env.get(ENV_PREFIX + field.upper())
            if raw is not None and raw != '':
                values[field] = raw
        return cls(**values)


def configure_logging(level='INFO'):
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
