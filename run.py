#!/usr/bin/env python
"""
Start the Ignite coaching service from a source checkout.

Puts src/ on the import path, loads .env and serves ignite.main:app.
"""

import sys
import os
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

try:
    from dotenv import load_dotenv
    import uvicorn
except ImportError as e:
    print(f"""
❌ Error: Missing required dependencies

{e}

Install the package into your virtual environment first:

    pip install -e .

Then run:
    python run.py
""")
    sys.exit(1)

load_dotenv()

# Logging must be configured before application modules create their loggers
from ignite.logging_config import configure_logging
configure_logging()

from ignite import __version__
from ignite.main import app


def environment_warnings():
    """Settings that will make coaching or authentication fail at request time"""
    warnings = []
    provider = os.getenv("LLM_PROVIDER", "anthropic").lower()

    if provider == "anthropic" and not (os.getenv("LLM_API_KEY") or os.getenv("ANTHROPIC_API_KEY")):
        warnings.append("LLM_API_KEY / ANTHROPIC_API_KEY is not set; coaching endpoints will fail")
    if not os.getenv("IGNITE_API_URL"):
        warnings.append("IGNITE_API_URL is not set; authenticating against http://localhost:5000")

    return warnings


def main():
    host = os.getenv("IGNITE_HOST", "127.0.0.1")
    port = int(os.getenv("IGNITE_PORT", "8000"))

    print(f"\n🔥 Ignite Coaching Service v{__version__}")
    print(f"   Backend:      {os.getenv('IGNITE_API_URL', 'http://localhost:5000')}")
    print(f"   LLM provider: {os.getenv('LLM_PROVIDER', 'anthropic')} "
          f"({os.getenv('LLM_MODEL_ID', 'default model')})\n")

    for warning in environment_warnings():
        print(f"⚠️  {warning}")

    print(f"\n🚀 Listening on http://{host}:{port} (docs at /docs, health at /health)\n")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower()
    )


if __name__ == "__main__":
    main()
