"""
Main application entry point for microauth.
Handles configuration, certificate acquisition and serving the Flask app
behind token authorization.
"""

import os
import sys
import signal
import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from werkzeug.serving import BaseWSGIServer

from .app import create_app
from .models.config import ServerConfig
from .security import MicroauthError, generate, load
from .security.models import Certificate
from .server import AuthServer
from .services.config_service import ConfigService
from .services.logging_service import LoggingService


class MicroauthApplication:
    """Main application class wiring configuration, certificates and the server."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the application.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path or self._get_default_config_path()
        self.logger = logging.getLogger(__name__)
        self.config_service: Optional[ConfigService] = None
        self.config: Optional[ServerConfig] = None
        self.logging_service: Optional[LoggingService] = None
        self.certificate: Optional[Certificate] = None
        self.auth_server: Optional[AuthServer] = None
        self.flask_app = None
        self.server: Optional[BaseWSGIServer] = None
        self._is_running = False
        self._startup_time: Optional[datetime] = None

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        possible_paths = [
            "config/microauth.properties",
            "microauth.properties",
            os.path.expanduser("~/.microauth/config.properties"),
            "/etc/microauth/config.properties"
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return possible_paths[0]

    def initialize(self, host: Optional[str] = None, port: Optional[int] = None,
                   plain: bool = False) -> bool:
        """
        Initialize all application components.

        Args:
            host: Overrides the configured listen host
            port: Overrides the configured listen port
            plain: Serve plain HTTP regardless of configuration

        Returns:
            True if initialization successful, False otherwise
        """
        if not self._load_configuration():
            return False

        overrides = {}
        if host is not None:
            overrides['host'] = host
        if port is not None:
            overrides['port'] = port
        if plain:
            overrides['enable_tls'] = False
        if overrides:
            self.config = replace(self.config, **overrides)

        self.logging_service = LoggingService(self.config)

        if not self._acquire_certificate():
            return False

        self.auth_server = AuthServer(
            certificate=self.certificate,
            header_name=self.config.header_name,
            cert_host=self.config.cert_host,
        )
        self.flask_app = create_app()

        self.logger.info("microauth initialized successfully")
        self._is_running = True
        return True

    def _load_configuration(self) -> bool:
        """Load application configuration."""
        self.config_service = ConfigService()

        if not os.path.exists(self.config_path):
            self.logger.warning(f"Configuration file not found: {self.config_path}")
            self.config_service.create_default_config_file(self.config_path)
            self.logger.info(f"Default configuration created at: {self.config_path}")
            self.logger.info("Please edit the configuration file and restart the application")
            return False

        try:
            self.config = self.config_service.load_config(self.config_path)
        except (ValueError, OSError) as e:
            self.logger.error(f"Failed to load configuration: {e}")
            return False

        self.logger.info(f"Configuration loaded from: {self.config_path}")
        return True

    def _acquire_certificate(self) -> bool:
        """Load the configured certificate or generate a self-signed one."""
        if not self.config.enable_tls:
            return True

        try:
            if self.config.cert_path:
                self.certificate = load(
                    self.config.cert_path,
                    self.config.key_path,
                    self.config.key_password or "",
                )
            else:
                self.certificate = generate(self.config.cert_host)
        except MicroauthError as e:
            self.logger.error(f"Failed to acquire TLS certificate: {e}")
            return False

        self.logger.info("TLS certificate ready", extra={'context': {
            'source': self.config.cert_path or 'generated',
            'subject': self.certificate.subject,
            'fingerprint': self.certificate.fingerprint,
            'not_after': self.certificate.not_after.isoformat(),
        }})
        return True

    def run(self):
        """Serve requests until interrupted."""
        if not self._is_running:
            self.logger.error("Application not initialized. Call initialize() first.")
            return

        try:
            self.server = self.auth_server.make_server(
                self.config.address,
                self.config.token,
                self.flask_app,
                *self.config.excluded_paths,
                tls=self.config.enable_tls,
            )
            signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)
            self._startup_time = datetime.now()
            self.server.serve_forever()
        except KeyboardInterrupt:
            self.logger.info("Shutdown requested")
        finally:
            self.shutdown()

    def shutdown(self):
        """Close the listener and flush logs."""
        if not self._is_running:
            return

        self._is_running = False
        if self.server:
            self.server.server_close()
            self.server = None
        self.logger.info("Shutdown completed")
        if self.logging_service:
            self.logging_service.shutdown()

    def is_running(self) -> bool:
        """Check if the application is running."""
        return self._is_running

    def get_status(self) -> dict:
        """Get application status information."""
        status = {
            'running': self._is_running,
            'config_path': self.config_path,
            'address': self.config.address if self.config else None,
            'tls_enabled': self.config.enable_tls if self.config else False,
            'header_name': self.config.header_name if self.config else None,
            'excluded_paths': list(self.config.excluded_paths) if self.config else [],
            'startup_time': self._startup_time.isoformat() if self._startup_time else None
        }

        if self.certificate:
            status['certificate'] = {
                'subject': self.certificate.subject,
                'fingerprint': self.certificate.fingerprint,
                'not_after': self.certificate.not_after.isoformat()
            }

        return status


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt()


def write_generated_certificate(output_dir: str, host: str) -> Certificate:
    """Generate a self-signed certificate and write server.crt/server.key to ``output_dir``."""
    os.makedirs(output_dir, exist_ok=True)
    certificate = generate(host)
    certificate.write(
        os.path.join(output_dir, "server.crt"),
        os.path.join(output_dir, "server.key"),
    )
    return certificate


def main(argv=None):
    """Main entry point for the application."""
    import argparse

    parser = argparse.ArgumentParser(description='Serve a WSGI app behind TLS and token authorization')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--host', help='Host to bind to (uses config if not specified)')
    parser.add_argument('--port', type=int, help='Port to bind to (uses config if not specified)')
    parser.add_argument('--plain', action='store_true', help='Serve plain HTTP (development only)')
    parser.add_argument('--check-config', action='store_true', help='Check configuration and exit')
    parser.add_argument('--generate-cert', metavar='DIR',
                        help='Write a self-signed server.crt/server.key to DIR and exit')
    parser.add_argument('--cert-host', default='microbox.cloud',
                        help='Host name for --generate-cert (default: microbox.cloud)')

    args = parser.parse_args(argv)

    if args.generate_cert:
        try:
            certificate = write_generated_certificate(args.generate_cert, args.cert_host)
        except (MicroauthError, OSError) as e:
            print(f"Certificate generation failed: {e}")
            sys.exit(1)
        print(f"Certificate written to: {args.generate_cert}")
        print(f"SHA256 fingerprint: {certificate.fingerprint}")
        sys.exit(0)

    app = MicroauthApplication(config_path=args.config)

    if not app.initialize(host=args.host, port=args.port, plain=args.plain):
        print("Failed to initialize application")
        sys.exit(1)

    if args.check_config:
        print("Configuration check passed")
        status = app.get_status()
        print(f"Config path: {status['config_path']}")
        print(f"Address: {status['address']}")
        print(f"TLS enabled: {status['tls_enabled']}")
        print(f"Excluded paths: {', '.join(status['excluded_paths']) or '(none)'}")
        app.shutdown()
        sys.exit(0)

    try:
        app.run()
    except (MicroauthError, OSError) as e:
        print(f"Application error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
