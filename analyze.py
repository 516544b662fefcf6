#!/usr/bin/env python3
"""
LogWeave - Interactive Log Analysis CLI

Correlates an interleaved multi-service log file and asks the analysis
engine what went wrong.

Usage:
    python analyze.py incident.log                    # Full analysis (needs GEMINI_API_KEY)
    python analyze.py incident.log --offline          # Parse + request flow only, no API key needed
    python analyze.py incident.log --request-id abc123
    python analyze.py --help                          # Show all options

Set the API key once with:
    python configure.py --api-key YOUR_KEY
"""

import sys
import os
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))


def main():
    """Main entry point for the analysis CLI."""
    if len(sys.argv) == 1:
        print(__doc__)
        sys.exit(0)

    try:
        from dotenv import load_dotenv
        from logweave.config_loader import config
        from logweave.main import main as run_cli
    except ImportError as e:
        print(f"\n❌ Error importing LogWeave: {e}")
        print("\nMake sure all dependencies are installed:")
        print("  pip install -e .")
        sys.exit(1)

    load_dotenv(Path(__file__).parent / ".env")

    api_key_env = config.get('analysis.llm.api_key_env', 'GEMINI_API_KEY')
    if "--offline" not in sys.argv and not os.getenv(api_key_env):
        print(f"\n⚠️  Warning: {api_key_env} not set in environment")
        print("Full analysis requires an API key. Either run with --offline or set it with:")
        print(f"  export {api_key_env}='your-api-key-here'")
        sys.exit(1)

    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
