"""CLI script to hash a password the way the API stores it.

Usage: python scripts/hash_password.py PASSWORD [PASSWORD ...]

Prints one `password -> hash` line per argument, handy when writing seed
data or fixing a user row by hand.
"""
import argparse
import pathlib
import sys

# Ensure `backend/` is on sys.path so `gym_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gym_api.services import hash_password


def main(passwords):
    for password in passwords:
        print(f'{password} -> {hash_password(password)}')


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Hash passwords with the API password context')
    parser.add_argument('passwords', nargs='+', help='plain-text passwords to hash')
    args = parser.parse_args()
    main(args.passwords)
