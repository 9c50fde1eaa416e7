#!/usr/bin/env python3
"""
Example script serving a small Flask app behind TLS and token authorization.

Try it with:
    curl -k https://localhost:8443/health
    curl -k -H "X-MICROBOX-TOKEN: example-token" https://localhost:8443/hello
"""
import sys
import os

# Add the repository root to the path so we can import the package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from flask import jsonify

from microauth import AuthServer, create_app, generate


def main():
    """Generate a certificate and serve until interrupted."""
    print("=== microauth Serving Demo ===\n")

    print("1. Generating a self-signed certificate...")
    certificate = generate("localhost")
    print(f"✓ Subject: {certificate.subject}")
    print(f"  - Valid until: {certificate.not_after.isoformat()}")
    print(f"  - SHA256 fingerprint: {certificate.fingerprint}")

    print("\n2. Building the app...")
    app = create_app("serve-example")

    @app.route('/hello', methods=['GET', 'POST'])
    def hello():
        return jsonify({'message': 'hello, authorized caller'})

    print("✓ Routes: /health (excluded), /hello (token required)")

    print("\n3. Serving on https://localhost:8443 (Ctrl+C to stop)...")
    auth_server = AuthServer(certificate=certificate)
    try:
        auth_server.serve_tls("localhost:8443", "example-token", app, "/health")
    except KeyboardInterrupt:
        print("\n✓ Stopped")


if __name__ == "__main__":
    main()
