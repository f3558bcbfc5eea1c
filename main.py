#!/usr/bin/env python3
"""
main.py: NetBird MSP Comprehensive Billing Report
Usage:
  python main.py [--config config.yaml] [--output-dir DIR] [--excel]

Requires NETBIRD_API_TOKEN (environment, .env, or ~/.netbird-msp.env).

Outputs:
  - netbird_comprehensive_<timestamp>.txt
  - netbird_comprehensive_<timestamp>.json
  - netbird_comprehensive_<timestamp>.xlsx (with --excel)
"""
import sys

from netbird_msp.cli import main

if __name__ == "__main__":
    sys.exit(main())
