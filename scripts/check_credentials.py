#!/usr/bin/env python3
"""CLI tool for checking service credentials.

Usage:
    python scripts/check_credentials.py
    python scripts/check_credentials.py --skip-network

Environment Variables:
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, OPENAI_API_KEY,
    TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN (required)
    GOOGLE_REFRESH_TOKEN, GOOGLE_AUDIT_SHEET_ID, TWILIO_WEBHOOK_URL (optional)
"""

import argparse
import sys

from driveassist.credentials import CredentialReport, run_checks


def print_report(report: CredentialReport) -> None:
    """Print the report grouped by outcome."""
    print("=" * 50)
    print("CREDENTIAL REPORT")
    print("=" * 50)

    if report.success:
        print("\n✅ SUCCESSFUL CHECKS:")
        for message in report.success:
            print(f"  • {message}")

    if report.warnings:
        print("\n⚠️  WARNINGS:")
        for message in report.warnings:
            print(f"  • {message}")

    if report.errors:
        print("\n❌ ERRORS TO FIX:")
        for message in report.errors:
            print(f"  • {message}")
        print("\nUpdate your environment with correct values and run this script again.")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Check credentials for the Drive Assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--skip-network",
        action="store_true",
        help="Only check environment variables, do not call external APIs",
    )
    args = parser.parse_args()

    report = run_checks(skip_network=args.skip_network)
    print_report(report)
    sys.exit(0 if report.ok else 1)


if __name__ == "__main__":
    main()
