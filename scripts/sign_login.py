"""
Sign a Launchpad login challenge with a local private key.

    PRIVATE_KEY=0x... python scripts/sign_login.py <nonce>

Prints the JSON body for POST /api/v1/auth/login.
"""
import json
import os
import sys

from eth_account import Account
from eth_account.messages import encode_defunct

from launchpad.services.signature import login_message


def main():
    if len(sys.argv) != 2:
        sys.exit("usage: sign_login.py <nonce>")
    nonce = sys.argv[1]

    account = Account.from_key(os.environ["PRIVATE_KEY"])
    signed = account.sign_message(encode_defunct(text=login_message(nonce)))

    print(json.dumps({
        "address": account.address,
        "nonce": nonce,
        "signature": "0x" + bytes(signed.signature).hex(),
    }, indent=2))


if __name__ == "__main__":
    main()
