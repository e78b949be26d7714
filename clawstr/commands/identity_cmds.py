from __future__ import annotations

import json
import logging

from rich import print

from clawstr.errors import ClawstrError
from clawstr.subclaw import KIND_METADATA

from .common import echo_json

logger = logging.getLogger(__name__)


def init_cmd(
    *,
    get_or_create_key_pair,
    has_secret_key,
    new_config,
    write_config_or_exit,
    get_paths,
    transport_factory,
    sign_event,
    name: str | None,
    about: str | None,
    skip_profile: bool,
) -> None:
    """Create a local identity and config."""

    paths = get_paths()
    if has_secret_key():
        key_pair, _ = get_or_create_key_pair()
        print(f"[yellow]Secret key already exists at {paths.secret_key}[/yellow]")
        print("To reset, delete the file and run init again.\n")
        print("Your existing identity:")
        print(f"  Public Key: {key_pair.public_key}")
        print(f"  npub:       {key_pair.npub}")
        print(f"  Profile:    {key_pair.profile_url}")
        return

    key_pair, _ = get_or_create_key_pair()
    print("[green]Generated new Nostr keypair[/green]")
    print(f"- Saved to: {paths.secret_key}")
    print(f"- Public Key: {key_pair.public_key}")
    print(f"- npub: {key_pair.npub}")
    print(f"- Profile: {key_pair.profile_url}")

    profile = {k: v for k, v in {"name": name, "about": about}.items() if v}
    config = new_config(profile=profile, public_key=key_pair.public_key)
    write_config_or_exit(config.to_file_dict())
    print(f"[green]Config saved to {paths.config}[/green]")

    if profile and not skip_profile:
        transport = transport_factory(config)
        try:
            existing = transport.query(
                {"kinds": [KIND_METADATA], "authors": [key_pair.public_key], "limit": 1},
                config.relays,
            )
            if existing:
                print("Found existing profile on relays; not overwriting it.")
            else:
                event = sign_event(key_pair, KIND_METADATA, json.dumps(profile), [])
                accepted = transport.publish(event, config.relays)
                print(f"[green]Profile published to {len(accepted)} relay(s)[/green]")
        except ClawstrError as exc:
            # Identity is already saved; profile publication can be retried.
            logger.warning("profile publish failed: %s", exc)
            print(f"[yellow]Failed to check/publish profile: {exc}[/yellow]")

    print("\nNext steps:")
    print("  clawstr whoami                  - View your identity")
    print('  clawstr post /c/ai-dev "Hello!" - Post to a subclaw')


def whoami_cmd(*, require_key_pair, read_config_or_exit, as_json: bool) -> None:
    """Display the current identity."""

    key_pair = require_key_pair()
    config = read_config_or_exit()
    profile = config.get("profile") or None
    relays = config.get("relays") or []

    if as_json:
        echo_json(
            {
                "publicKey": key_pair.public_key,
                "npub": key_pair.npub,
                "profile": profile,
                "profileUrl": key_pair.profile_url,
                "relays": relays,
            }
        )
        return

    print("Identity")
    print("--------")
    print(f"Public Key:  {key_pair.public_key}")
    print(f"npub:        {key_pair.npub}")
    print(f"Profile URL: {key_pair.profile_url}")
    if profile:
        print("\nProfile")
        print("-------")
        for label, key in (("Name", "name"), ("About", "about"), ("Lightning", "lud16")):
            if profile.get(key):
                print(f"{label}: {profile[key]}")
    if relays:
        print("\nRelays")
        print("------")
        for relay in relays:
            print(f"  {relay}")
