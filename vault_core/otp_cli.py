#!/usr/bin/env python3
"""
otp_cli.py — command line front end for vault_core

Subcommands:
- totp     : show the TOTP code for a secret (once, or refreshed live)
- hotp     : HOTP code for a secret and counter
- code     : code for an otpauth:// URI
- uri      : build an otpauth:// URI
- convert  : read otpauth / migration URIs or JSON, write txt/json/csv/migration
- keygen   : print a random Base32 secret
- check    : validate a Base32 secret
- step     : TOTP step information for a timestamp
"""

import argparse
import logging
import sys
import time

from . import base32, interchange, keys, otpauth
from .credential import DEFAULT_DIGITS, DEFAULT_PERIOD, Algorithm, Credential, OTPKind
from .otp_core import FixedClock, generate_for, hotp, remaining_seconds, totp

logger = logging.getLogger("vault_core.cli")


def _clock(args):
    return FixedClock(args.at) if args.at is not None else time.time


def _secret_bytes(text: str) -> bytes:
    return base32.decode(base32.normalize_secret(text))


# --- CLI command handlers ---
def cmd_totp(args):
    secret = _secret_bytes(args.secret)
    algorithm = Algorithm.from_label(args.algorithm)
    if not args.watch:
        now = _clock(args)()
        code, remaining = totp(secret, now, args.period, args.digits, algorithm)
        print(f"TOTP ({args.digits}d): {code}  (valid ~{remaining:2d}s)")
        return 0

    print(f"Press Ctrl+C to quit. Generating {args.digits}-digit TOTP every {args.period}s...\n")
    last_code = None
    try:
        while True:
            code, remaining = totp(secret, time.time(), args.period, args.digits, algorithm)
            if code != last_code:
                print(f"TOTP ({args.digits}d): {code}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


def cmd_hotp(args):
    secret = _secret_bytes(args.secret)
    code = hotp(secret, args.counter, args.digits, Algorithm.from_label(args.algorithm))
    print(f"HOTP({args.digits}d, counter={args.counter}): {code}")
    return 0


def cmd_code(args):
    credential = otpauth.parse(args.uri)
    clock = _clock(args)
    code = generate_for(credential, clock)
    if credential.kind is OTPKind.HOTP:
        print(f"{credential.label}: {code}  (counter={credential.counter})")
    else:
        remaining = remaining_seconds(credential.period, clock())
        print(f"{credential.label}: {code}  (valid ~{remaining:2d}s)")
    return 0


def cmd_uri(args):
    credential = Credential(
        name=args.name,
        account=args.account,
        secret=_secret_bytes(args.secret),
        kind=OTPKind.from_label(args.type),
        digits=args.digits,
        period=args.period,
        counter=args.counter,
        algorithm=Algorithm.from_label(args.algorithm),
    )
    print(otpauth.serialize(credential))
    return 0


def cmd_convert(args):
    with open(args.input, "r", encoding="utf-8") as f:
        result = interchange.parse_text(f.read())
    for error in result.errors:
        print(f"[!] skipped {error}", file=sys.stderr)
    logger.debug("parsed %d credentials from %s", len(result), args.input)

    output = interchange.EXPORTERS[args.format](result.credentials)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        print(f"[*] wrote {len(result)} credentials to {args.output}")
    else:
        print(output)
    return 0


def cmd_keygen(args):
    print(keys.generate_secret(args.length))
    return 0


def cmd_check(args):
    report = keys.check_secret(args.secret)
    if report.valid:
        print(f"[+] valid: {report.normalized} ({report.bit_length} bits) - {report.message}")
        return 0
    print(f"[-] invalid: {report.message}")
    return 1


def cmd_step(args):
    now = args.at if args.at is not None else time.time()
    info = keys.step_info(now, args.period)
    print(f"timestamp: {info.timestamp}")
    print(f"counter:   {info.counter} (0x{info.counter_hex})")
    print(f"remaining: {info.remaining}s ({info.progress:.0%})")
    return 0


def cmd_help(args):
    print("'python -m vault_core.otp_cli -h' for help.")
    return 0


# --- Argparse builder ---
def _add_derivation_args(p, with_period: bool = True):
    p.add_argument("--digits", type=int, default=DEFAULT_DIGITS, help="Number of OTP digits")
    p.add_argument("--algorithm", default="SHA1", help="SHA1, SHA256 or SHA512")
    if with_period:
        p.add_argument("--period", type=int, default=DEFAULT_PERIOD, help="TOTP time step (seconds)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="otp-vault credential tools")
    p.add_argument("--verbose", action="store_true", help="Verbose output")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    pt = sub.add_parser("totp", help="Show the TOTP code for a Base32 secret")
    pt.add_argument("--secret", required=True)
    _add_derivation_args(pt)
    pt.add_argument("--at", type=float, help="Unix time to use instead of now")
    pt.add_argument("--watch", action="store_true", help="Refresh every second")
    pt.set_defaults(func=cmd_totp)

    ph = sub.add_parser("hotp", help="Generate HOTP code for a specific counter")
    ph.add_argument("--secret", required=True)
    ph.add_argument("--counter", type=int, required=True)
    _add_derivation_args(ph, with_period=False)
    ph.set_defaults(func=cmd_hotp)

    pc = sub.add_parser("code", help="Show the current code for an otpauth:// URI")
    pc.add_argument("uri")
    pc.add_argument("--at", type=float, help="Unix time to use instead of now")
    pc.set_defaults(func=cmd_code)

    pu = sub.add_parser("uri", help="Build an otpauth:// URI")
    pu.add_argument("--secret", required=True)
    pu.add_argument("--name", required=True, help="Issuer / display name")
    pu.add_argument("--account", default="", help="Account label")
    pu.add_argument("--type", default="TOTP", choices=["TOTP", "HOTP", "totp", "hotp"])
    pu.add_argument("--counter", type=int, default=0)
    _add_derivation_args(pu)
    pu.set_defaults(func=cmd_uri)

    pv = sub.add_parser("convert", help="Convert exported credentials between formats")
    pv.add_argument("input", help="File with otpauth/migration URIs or JSON")
    pv.add_argument("--format", default="txt", choices=sorted(interchange.EXPORTERS))
    pv.add_argument("--output", help="Write to this file instead of stdout")
    pv.set_defaults(func=cmd_convert)

    pk = sub.add_parser("keygen", help="Print a random Base32 secret")
    pk.add_argument("--length", type=int, default=keys.MIN_SECRET_LENGTH)
    pk.set_defaults(func=cmd_keygen)

    pchk = sub.add_parser("check", help="Validate a Base32 secret")
    pchk.add_argument("secret")
    pchk.set_defaults(func=cmd_check)

    ps = sub.add_parser("step", help="TOTP time step information")
    ps.add_argument("--period", type=int, default=DEFAULT_PERIOD)
    ps.add_argument("--at", type=float, help="Unix time to use instead of now")
    ps.set_defaults(func=cmd_step)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s")
    try:
        return args.func(args)
    except (ValueError, OSError) as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
