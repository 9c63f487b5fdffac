"""Run the server: python -m ramzishare [--host H] [--port P] [--storage-dir DIR]"""
import argparse
import socket
from pathlib import Path

import uvicorn

from .app import create_app
from .config import Settings, configure_logging


def get_local_ip() -> str:
    """First non-loopback IPv4 address, or localhost."""
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # no packet is sent; this only selects the outbound interface
        s.connect(('10.255.255.255', 1))
        ip = s.getsockname()[0]
    except OSError:
        ip = 'localhost'
    finally:
        s.close()
    return ip


def main(argv=None):
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description='LAN file sharing and chat server')
    parser.add_argument('--host', default=settings.host)
    parser.add_argument('--port', type=int, default=settings.port)
    parser.add_argument('--storage-dir', default=str(settings.storage_dir))
    args = parser.parse_args(argv)
    settings = settings.model_copy(update={'host': args.host, 'port': args.port,
                                           'storage_dir': Path(args.storage_dir)})

    configure_logging(settings.log_level)
    app = create_app(settings)

    print('\n========================================')
    print('RamziShare running')
    print('========================================')
    print(f'Local:    http://localhost:{settings.port}')
    print(f'Network:  http://{get_local_ip()}:{settings.port}')
    print('========================================')
    print(f'Files stored in: {settings.storage_dir}')
    print(f'Public files in: {settings.public_dir}\n')

    uvicorn.run(app, host=settings.host, port=settings.port,
                log_level=settings.log_level.lower())


if __name__ == '__main__':
    main()
