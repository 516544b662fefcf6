#!/usr/bin/env python3
"""
LogWeave Configuration Script

Quick setup for the analysis-engine API key and a few settings.yaml values.
Usage:
    python configure.py                           # Interactive mode
    python configure.py --api-key YOUR_KEY        # Direct mode
    python configure.py --model MODEL_NAME        # Change analysis model
    python configure.py --orphans promote         # Show orphan spans as roots
    python configure.py --show                    # Print current settings
"""

import argparse
import sys
from pathlib import Path
import re

import yaml


ROOT_DIR = Path(__file__).parent
ENV_FILE = ROOT_DIR / ".env"
ENV_EXAMPLE = ROOT_DIR / ".env.example"
CONFIG_FILE = ROOT_DIR / "config" / "settings.yaml"

KEY_PLACEHOLDER = "GEMINI_API_KEY=your_gemini_api_key_here"

# Gemini model names accepted by --model
VALID_GEMINI_MODELS = {
    "gemini-2.0-flash",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.5-pro",
    "gemini-3-flash-preview",
}

ORPHAN_POLICIES = ("drop", "promote")


def write_env_file(api_key: str, force: bool = False) -> bool:
    """
    Create or update .env file with the Gemini API key.

    Args:
        api_key: The Gemini API key
        force: Overwrite existing .env file

    Returns:
        True if successful
    """
    if ENV_FILE.exists() and not force:
        print(f"⚠️  .env file already exists at {ENV_FILE}")
        response = input("Overwrite? [y/N]: ").strip().lower()
        if response != 'y':
            print("❌ Setup cancelled.")
            return False

    template = ENV_EXAMPLE.read_text() if ENV_EXAMPLE.exists() else KEY_PLACEHOLDER + "\n"

    if KEY_PLACEHOLDER in template:
        env_content = template.replace(KEY_PLACEHOLDER, f"GEMINI_API_KEY={api_key}")
    else:
        env_content = template.rstrip("\n") + f"\nGEMINI_API_KEY={api_key}\n"

    ENV_FILE.write_text(env_content)
    print(f"✅ API key written to {ENV_FILE}")
    return True


def set_yaml_value(key: str, value: str) -> bool:
    """
    Replace a quoted scalar in settings.yaml, keeping comments and layout.

    Args:
        key: Key name as it appears in the file (first occurrence is used)
        value: New value

    Returns:
        True if the key was found and updated
    """
    if not CONFIG_FILE.exists():
        print(f"❌ Error: Configuration file not found at {CONFIG_FILE}")
        return False

    content = CONFIG_FILE.read_text()
    pattern = rf'^(\s*{re.escape(key)}: )"[^"]*"(.*)$'
    new_content, count = re.subn(pattern, rf'\g<1>"{value}"\g<2>', content, count=1, flags=re.MULTILINE)

    if count == 0:
        print(f"❌ Error: '{key}' not found in {CONFIG_FILE}")
        return False

    CONFIG_FILE.write_text(new_content)
    print(f"✅ {key} set to {value}")
    return True


def update_model(model_name: str) -> bool:
    """Switch the analysis model after checking the name."""
    if model_name not in VALID_GEMINI_MODELS:
        print(f"❌ Error: '{model_name}' is not a recognized Gemini model name.")
        print("Valid models:")
        for model in sorted(VALID_GEMINI_MODELS):
            print(f"  • {model}")
        return False
    return set_yaml_value("model", model_name)


def show_settings() -> bool:
    """Print the settings LogWeave will use."""
    if not CONFIG_FILE.exists():
        print(f"❌ Error: Configuration file not found at {CONFIG_FILE}")
        return False

    settings = yaml.safe_load(CONFIG_FILE.read_text()) or {}
    llm = settings.get("analysis", {}).get("llm", {})
    tracing = settings.get("tracing", {})

    print(f"Model:          {llm.get('model')}")
    print(f"API key env:    {llm.get('api_key_env', 'GEMINI_API_KEY')}")
    print(f"Sample size:    {settings.get('ingest', {}).get('sample_size')}")
    print(f"Orphan policy:  {tracing.get('orphan_policy')}")
    print(f"Slow span (ms): {tracing.get('slow_span_ms')}")
    print(f".env present:   {ENV_FILE.exists()}")
    return True


def interactive_setup() -> bool:
    """Interactive setup mode."""
    print("=" * 60)
    print("LogWeave Setup - Analysis Engine")
    print("=" * 60)
    print()
    print("Get a Gemini API key from:")
    print("👉 https://aistudio.google.com/app/apikey")
    print()

    api_key = input("Enter your Gemini API key: ").strip()

    if not api_key or api_key == "your_gemini_api_key_here":
        print("❌ Error: Please provide a real API key")
        return False

    print()
    return write_env_file(api_key)


def main():
    parser = argparse.ArgumentParser(
        description="LogWeave Setup - API key and settings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument("--api-key", type=str, help="Gemini API key")
    parser.add_argument("--force", action="store_true", help="Overwrite existing .env file without asking")
    parser.add_argument("--model", type=str, help="Gemini model name (e.g., gemini-2.5-flash)")
    parser.add_argument("--orphans", choices=ORPHAN_POLICIES, help="Orphan span policy")
    parser.add_argument("--show", action="store_true", help="Print current settings")

    args = parser.parse_args()

    if args.show:
        sys.exit(0 if show_settings() else 1)

    if args.model or args.orphans:
        ok = True
        if args.model:
            ok = update_model(args.model) and ok
        if args.orphans:
            ok = set_yaml_value("orphan_policy", args.orphans) and ok
        sys.exit(0 if ok else 1)

    if args.api_key:
        sys.exit(0 if write_env_file(args.api_key, force=args.force) else 1)

    sys.exit(0 if interactive_setup() else 1)


if __name__ == "__main__":
    main()
