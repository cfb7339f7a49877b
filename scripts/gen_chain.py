#!/usr/bin/env python3

"""
Generate a throwaway root -> intermediate -> leaf chain and print it.
Nothing is written to disk.

Usage:
    python scripts/gen_chain.py --org "ACME Company" --host myhost.local --host 10.0.0.5
    python scripts/gen_chain.py --org "ACME Company" --client --host laptop.local
Prints:
    leaf certificate, intermediate CA, root CA (PEM), then the leaf private key
"""

import argparse
import logging
import sys

from selfsigned.common.models import SubjectFields
from selfsigned.crypto import chain
from selfsigned.crypto.errors import CertSignError


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--org", required=True, help="Subject organization")
    parser.add_argument("--cn", default="", help="Common Name (defaults to the organization)")
    parser.add_argument("--host", action="append", default=[], help="DNS name or IP for the leaf (repeatable)")
    parser.add_argument("--client", action="store_true", help="Issue a client certificate instead of a server one")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    try:
        fields = SubjectFields(common_name=args.cn, organization=[args.org])
    except ValueError as e:
        parser.error(str(e))

    try:
        root = chain.generate_root(fields)
        intermediate = chain.generate_intermediate(fields, root)
        if args.client:
            leaf = chain.generate_client(fields, intermediate, args.host)
        else:
            leaf = chain.generate_server(fields, intermediate, args.host)
    except CertSignError as e:
        print(f"[-] {e}", file=sys.stderr)
        sys.exit(1)

    sys.stdout.write(chain.full_chain_pem(leaf, intermediate, root).decode())
    sys.stdout.write(leaf.private_bytes.decode())

    print(f"[+] Issued {leaf.common_name}", file=sys.stderr)
    print(f"    intermediate: {intermediate.common_name}", file=sys.stderr)
    print(f"    root:         {root.common_name}", file=sys.stderr)


if __name__ == "__main__":
    main()
