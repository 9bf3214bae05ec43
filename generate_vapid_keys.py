"""
Generate VAPID key pair for Web Push notifications.

Run once:
    python generate_vapid_keys.py

Copy the output into your .env file, or store it in app_secrets.
"""
from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid

from app.infrastructure.webpush.encryption import raw_public_key
from app.utils.base64url import b64url_encode


def main():
    v = Vapid()
    v.generate_keys()

    # Application server key (URL-safe base64, uncompressed EC point)
    app_server_key = b64url_encode(raw_public_key(v.public_key))

    # PKCS8 DER, base64url: single line, safe for .env and app_secrets
    pkcs8 = v.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    private_key = b64url_encode(pkcs8)

    print("Add these to your .env:\n")
    print(f"VAPID_PUBLIC_KEY={app_server_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    print("\nOr store them in the database:\n")
    print(f"INSERT INTO app_secrets (key, value) VALUES ('vapid_public_key', '{app_server_key}');")
    print(f"INSERT INTO app_secrets (key, value) VALUES ('vapid_private_key', '{private_key}');")


if __name__ == "__main__":
    main()
