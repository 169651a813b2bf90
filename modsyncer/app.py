"""
Minecraft Mod Syncer - command line front end.

Keeps the mods folder of a profile in line with a server branch:

    modsyncer profiles create survival --address mods.example.com --mods ~/.minecraft/mods --branch main
    modsyncer status
    modsyncer sync --select Optifine.jar --keep MyLocalMod.jar
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config.overrides import OverrideRecord, OverrideStore
from .config.profiles import Profile, ProfileManager
from .core.errors import ModSyncError
from .core.paths import find_mods_folder, get_log_path, get_overrides_dir, get_profiles_path
from .core.formatting import format_size
from .sync.session import SyncSession
from .ui import (
    Colors,
    TransferProgress,
    paint,
    print_reconciliation,
    print_transfer_summary,
    show_confirmation,
)

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path, verbose: bool = False):
    """Send engine logs to the session log file; only errors reach stderr."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s", "%H:%M:%S"))
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stderr_handler.setLevel(logging.INFO if verbose else logging.ERROR)

    root = logging.getLogger("modsyncer")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(file_handler)
    root.addHandler(stderr_handler)

    with open(log_path, "a", encoding="utf-8") as f:
        f.write(f"\n{'=' * 60}\n")
        f.write(f"Session started: {datetime.now().isoformat()} (v{__version__})\n")
        f.write(f"{'=' * 60}\n")


class SyncApp:
    """Main application controller."""

    def __init__(self, profile_name: Optional[str] = None):
        self.override_store = OverrideStore(get_overrides_dir())
        self.profiles = ProfileManager.load(get_profiles_path(), self.override_store)
        self.profile_name = profile_name

    def active_profile(self) -> Profile:
        if self.profile_name:
            return self.profiles.activate(self.profile_name)
        profile = self.profiles.startup()
        if profile is None:
            raise ModSyncError("No profile yet. Create one with: modsyncer profiles create NAME --address HOST")
        return profile

    def open_session(self, profile: Profile) -> SyncSession:
        return SyncSession(profile, override_store=self.override_store)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def handle_profiles_list(self) -> int:
        names = self.profiles.list()
        if not names:
            print("No profiles.")
            return 0
        for name in names:
            profile = self.profiles.get(name)
            marker = "*" if name == self.profiles.last_profile else " "
            print(f" {marker} {name}")
            print(paint(f"     {profile.address or '-'}  branch={profile.branch or '-'}  "
                        f"mods={profile.mods_path or '(auto)'}", Colors.MUTED))
        return 0

    def handle_profiles_create(self, args) -> int:
        mods_path = args.mods or ""
        if not mods_path:
            found = find_mods_folder()
            if found:
                mods_path = str(found)
                print(f"Using mods folder {mods_path}")
        profile = self.profiles.create(Profile(
            name=args.name,
            address=args.address or "",
            mods_path=mods_path,
            branch=args.branch or "",
        ))
        self.profiles.activate(profile.name)
        print(f"Created profile '{profile.name}'.")
        return 0

    def handle_profiles_edit(self, args) -> int:
        profile = self.profiles.get(args.name)
        if args.address is not None:
            profile.address = args.address
        if args.mods is not None:
            profile.mods_path = args.mods
        if args.branch is not None:
            profile.branch = args.branch
        self.profiles.save(profile)
        print(f"Updated profile '{profile.name}'.")
        return 0

    def handle_profiles_delete(self, args) -> int:
        if not args.yes and not show_confirmation(f"Delete profile '{args.name}'?"):
            return 1
        self.profiles.delete(args.name)
        print(f"Deleted profile '{args.name}'.")
        return 0

    def handle_profiles_use(self, args) -> int:
        self.profiles.activate(args.name)
        print(f"Now using profile '{args.name}'.")
        return 0

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def handle_branches(self) -> int:
        profile = self.active_profile()
        with self.open_session(profile) as session:
            for name in session.branch_names():
                marker = "*" if name == profile.branch else " "
                print(f" {marker} {name}")
        return 0

    def handle_status(self, args) -> int:
        profile = self.active_profile()
        with self.open_session(profile) as session:
            result = session.refresh(args.branch)
            print_reconciliation(result)
        return 0

    def handle_sync(self, args) -> int:
        profile = self.active_profile()
        with self.open_session(profile) as session:
            print(f"Checking '{profile.name}' against {session.client.base_url}...")
            result = session.refresh(args.branch)
            pending = session.propose(result)

            base = result.overrides
            overrides = OverrideRecord(
                branch=result.branch.name,
                optionals_selected=(base.optionals_selected | set(args.select)) - set(args.deselect),
                keep_flagged=(base.keep_flagged | set(args.keep)) - set(args.unkeep),
            )
            plan = session.confirm(pending, overrides, remove=args.remove)

            if plan.is_empty:
                print_reconciliation(result)
                if overrides != base:
                    self.override_store.save(profile.name, plan.overrides)
                    print("Saved choices.")
                return 0

            for warning in result.warnings:
                print(paint(f"  WARN: {warning}", Colors.YELLOW))
            print(f"\n  {len(plan.downloads)} to download ({format_size(plan.download_size)}, {plan.mode.value}), "
                  f"{len(plan.deletions)} to delete")
            for local in plan.deletions:
                print(f"    - {local.name}")
            if args.dry_run:
                return 0
            if not args.yes and not show_confirmation("Proceed?"):
                print("Nothing changed.")
                return 1

            print("  (press Ctrl+C to cancel)\n")
            progress = TransferProgress(len(plan.downloads), len(plan.deletions))
            transfer = session.run(plan, on_event=progress)
            print_transfer_summary(transfer, progress.elapsed)
            return 0 if transfer.ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modsyncer",
        description="Minecraft Mod Syncer - keep your mods folder in sync with a server",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-p", "--profile", help="Profile to use (default: last used)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log details to stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    profiles = commands.add_parser("profiles", help="Manage profiles")
    profile_commands = profiles.add_subparsers(dest="profiles_command")
    profile_commands.add_parser("list", help="List profiles")
    for name in ("create", "edit"):
        sub = profile_commands.add_parser(name, help=f"{name.capitalize()} a profile")
        sub.add_argument("name")
        sub.add_argument("--address", help="Server address, e.g. mods.example.com")
        sub.add_argument("--mods", help="Path to the minecraft mods folder")
        sub.add_argument("--branch", help="Server branch to follow")
    delete = profile_commands.add_parser("delete", help="Delete a profile and its saved choices")
    delete.add_argument("name")
    delete.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")
    use = profile_commands.add_parser("use", help="Make a profile the default")
    use.add_argument("name")

    commands.add_parser("branches", help="List the server's branches")

    status = commands.add_parser("status", help="Show what a sync would change")
    status.add_argument("-b", "--branch", help="Branch (default: the profile's)")

    sync = commands.add_parser("sync", help="Download and remove mods")
    sync.add_argument("-b", "--branch", help="Branch (default: the profile's)")
    sync.add_argument("--select", action="append", default=[], metavar="MOD", help="Install an optional mod")
    sync.add_argument("--deselect", action="append", default=[], metavar="MOD", help="Stop installing an optional mod")
    sync.add_argument("--keep", action="append", default=[], metavar="MOD", help="Never delete this local file")
    sync.add_argument("--unkeep", action="append", default=[], metavar="MOD", help="Clear a keep flag")
    sync.add_argument("--remove", action="append", default=[], metavar="MOD",
                      help="Also delete this file (a kept file or an unselected optional)")
    sync.add_argument("-n", "--dry-run", action="store_true", help="Only show the plan")
    sync.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")
    return parser


def main(argv=None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(get_log_path(), args.verbose)
    try:
        app = SyncApp(profile_name=args.profile)
        if args.command == "profiles":
            if args.profiles_command in (None, "list"):
                return app.handle_profiles_list()
            if args.profiles_command == "create":
                return app.handle_profiles_create(args)
            if args.profiles_command == "edit":
                return app.handle_profiles_edit(args)
            if args.profiles_command == "delete":
                return app.handle_profiles_delete(args)
            if args.profiles_command == "use":
                return app.handle_profiles_use(args)
        elif args.command == "branches":
            return app.handle_branches()
        elif args.command == "status":
            return app.handle_status(args)
        elif args.command == "sync":
            return app.handle_sync(args)
    except (ModSyncError, ValueError) as e:
        logger.info("Command failed: %s", e)
        print(paint(f"Error: {e}", Colors.RED), file=sys.stderr)
        return 2
    return 2


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        sys.exit(0)
