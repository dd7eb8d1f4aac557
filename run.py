#!/usr/bin/env python3
"""
Vault Ledger Entry Point

Starts the FastAPI server with the wallet, vault and deduction endpoints.
Host, port and database come from VAULT_LEDGER_* environment variables.
"""

import sys

from vault_ledger.api import run_server
from vault_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Vault Ledger...")
    print(f"API available at: http://{config.api_host}:{config.api_port}{config.api_prefix}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Vault Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
