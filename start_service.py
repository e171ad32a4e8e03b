#!/usr/bin/env python3
"""
Service startup script for the FLUX LoRA backend
Sets development defaults (DynamoDB Local, MinIO) and starts the API server
"""

import os
import sys


def setup_environment():
    """Set up environment variables for development"""
    env_vars = {
        "API_HOST": "0.0.0.0",
        "API_PORT": "8000",
        "API_RELOAD": "true",
        "LOG_LEVEL": "INFO",
        "LOG_FILE": "app.log",
        # Local AWS emulators
        "AWS_ACCESS_KEY_ID": "test",
        "AWS_SECRET_ACCESS_KEY": "test",
        "AWS_REGION": "us-east-1",
        "DYNAMODB_ENDPOINT_URL": "http://localhost:8001",
        "S3_ENDPOINT_URL": "http://localhost:9000",
        "CREATE_TABLES": "true",
        # Development-only signing secret
        "JWT_SECRET": "dev-secret-change-me",
    }

    for key, value in env_vars.items():
        if key not in os.environ:
            os.environ[key] = value
            # never echo secrets
            shown = "***" if "SECRET" in key else value
            print(f"Set {key}={shown}")


def check_dependencies():
    """Check if required dependencies are installed"""
    try:
        import fastapi
        import uvicorn
        import boto3
        import jose
        import passlib
        import cryptography
        import pydantic_settings
        print("✅ All required dependencies are available")
        return True
    except ImportError as e:
        print(f"❌ Missing dependency: {e}")
        print("Please install dependencies with: pip install -e .")
        return False


def start_api_server():
    """Start the FastAPI server"""
    print("🚀 Starting FLUX LoRA backend...")

    try:
        import uvicorn

        uvicorn.run(
            "fluxlora.main:app",
            host=os.environ.get("API_HOST", "0.0.0.0"),
            port=int(os.environ.get("API_PORT", "8000")),
            reload=os.environ.get("API_RELOAD", "true").lower() == "true",
            log_level=os.environ.get("LOG_LEVEL", "info").lower()
        )
    except Exception as e:
        print(f"❌ Failed to start server: {e}")
        sys.exit(1)


def main():
    """Main startup function"""
    print("FLUX LoRA Backend - Startup Script")
    print("=" * 50)

    setup_environment()

    if not check_dependencies():
        sys.exit(1)

    start_api_server()


if __name__ == "__main__":
    main()
