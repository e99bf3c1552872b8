"""
Print a new ENCRYPTION_KEY value (64 hex characters).

    echo "ENCRYPTION_KEY=$(python generate_encryption_key.py)" >> .env

Changing the key makes every stored credential undecryptable; only rotate
after re-encrypting existing rows.
"""

from saasguard.core.encryption import generate_key


if __name__ == "__main__":
    print(generate_key())
