#!/usr/bin/env python3
"""
Environment setup for the AetherFlow API.
Writes a .env file with a fresh secret key and the default settings.
"""

import os
import secrets
import string


def generate_secret_key(length=64):
    """Generate a random secret key."""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def main():
    print("Setting up AetherFlow API...\n")

    if os.path.exists('.env'):
        print(".env file already exists. Do you want to overwrite it? (y/n): ", end="")
        response = input().lower().strip()
        if response != 'y':
            print("Setup cancelled.")
            return

    secret_key = generate_secret_key(64)

    env_content = f"""# AetherFlow API Environment Variables
DATABASE_URL=sqlite:///./aetherflow.db
SECRET_KEY={secret_key}
ALGORITHM=HS256
ACCESS_TOKEN_EXPIRE_MINUTES=60
DEFAULT_WORKDAY_START=09:00
DEFAULT_WORKDAY_END=17:00
DEFAULT_TIMEZONE=UTC
CELERY_BROKER_URL=redis://localhost:6379/0
CELERY_RESULT_BACKEND=redis://localhost:6379/0
COMPACTION_INTERVAL_MINUTES=15
LOG_LEVEL=INFO
"""

    with open('.env', 'w') as f:
        f.write(env_content)

    print("Environment setup completed!")
    print(f"Secret key generated: {secret_key[:20]}...")

    print("\nNext steps:")
    print("1. Install dependencies: pip install -e .[test]")
    print("2. Run the application: python run.py")
    print("3. Start background compaction: python start_celery.py worker / python start_celery.py beat")
    print("4. Open http://localhost:8000/docs in your browser")


if __name__ == "__main__":
    main()
