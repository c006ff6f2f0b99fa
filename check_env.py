#!/usr/bin/env python3
"""Helper script to check the .env file and the settings the API will start with."""

from pathlib import Path
import os
import sys

SECRET_VARS = ("FIELDOPS_SUPABASE_KEY", "FIELDOPS_OPTIMIZER_API_KEY")

TEMPLATE = """# Supabase Configuration (Required for tickets, technicians and contracts)
FIELDOPS_SUPABASE_URL=https://your-project-id.supabase.co
FIELDOPS_SUPABASE_KEY=your-service-role-key-here

# AI route optimizer (Required for route optimization and preventive planning)
FIELDOPS_OPTIMIZER_BASE_URL=http://localhost:3400
FIELDOPS_OPTIMIZER_API_KEY=

# API Configuration
FIELDOPS_API_PREFIX=/api
FIELDOPS_BUSINESS_TIMEZONE=America/Sao_Paulo
# FIELDOPS_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list

# Data Paths
FIELDOPS_DATA_ROOT=./data
FIELDOPS_SUPPORT_POINTS_FILE=./data/support_points.xlsx

# Preventive planning
FIELDOPS_PREVENTIVE_MIN_VISITS_PER_DAY=4
FIELDOPS_PREVENTIVE_MAX_VISITS_PER_DAY=6
"""


def _mask(line: str) -> str:
    name, _, value = line.partition("=")
    value = value.strip()
    if name.strip() in SECRET_VARS and len(value) > 20:
        return f"{name}={value[:10]}...{value[-6:]}"
    return line


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Field Service Dispatch Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"❌ .env file NOT found, created a template at: {env_file}")
        print("⚠️  Please edit .env and add your Supabase and optimizer settings!")
        return

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    for name in ("FIELDOPS_SUPABASE_URL", "FIELDOPS_SUPABASE_KEY", "FIELDOPS_OPTIMIZER_BASE_URL"):
        marker = "✅" if os.getenv(name) else "❌"
        print(f"{marker} {name} {'set' if os.getenv(name) else 'not set'} in environment")
    print()

    print("Testing config loading...")
    try:
        sys.path.insert(0, str(project_root / "src"))
        from fieldops.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    checks = {
        "Supabase": bool(settings.supabase_url and settings.supabase_key),
        "Route optimizer": bool(settings.optimizer_base_url),
    }
    for label, ok in checks.items():
        print(f"{'✅' if ok else '❌'} {label} {'configured' if ok else 'NOT configured'}")
    print(f"   Business time zone: {settings.business_timezone}")
    print(f"   Visits per day: {settings.preventive_min_visits_per_day}-{settings.preventive_max_visits_per_day}")

    if not all(checks.values()):
        print()
        print("Troubleshooting:")
        print("1. Make sure .env file exists in project root")
        print("2. Make sure variables start with FIELDOPS_ prefix")
        print("3. Restart backend after editing .env")


if __name__ == "__main__":
    main()
