"""Atelier CLI entrypoints."""

from __future__ import annotations

import argparse
import threading
from pathlib import Path

from .chat.commands import COMMANDS, Intent
from .chat.intent_parser import parse_intent
from .engine import StudioEngine
from .media import MediaBlob, guess_mime
from .providers import PROVIDERS, default_provider
from .runway.producer import ProductionError
from .runway.scenarios import SCENARIOS
from .studio.state import StudioState
from .utils import load_dotenv


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="atelier", description="Atelier fashion design studio engine")
    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Interactive studio session")
    chat.add_argument("--out", required=True, help="Session output directory")
    chat.add_argument("--events", help="Path to events.jsonl")
    chat.add_argument("--provider", choices=PROVIDERS, help="Capability provider (default: ATELIER_PROVIDER or gemini)")
    return parser


def _print_status(state: StudioState) -> None:
    print(f"Status: {state.status.value}")
    if not state.concepts:
        print("No concepts yet.")
    for concept in state.concepts:
        marker = "*" if concept.id == state.active_concept_id else " "
        flags = []
        if concept.finalized:
            flags.append("finalized")
        if concept.pending:
            flags.append("pending " + ",".join(sorted(role.value for role in concept.pending)))
        if concept.tech_pack is not None:
            flags.append("tech pack (stale)" if concept.tech_pack_stale else "tech pack")
        suffix = f" [{'; '.join(flags)}]" if flags else ""
        print(f"{marker} {concept.id}: {concept.name}{suffix}")
        for image in concept.images.all():
            stale = " stale" if image.stale else ""
            print(f"    {image.role.value}: {image.id} rev {image.revision}{stale}")
    if state.gallery:
        print(f"Gallery: {len(state.gallery)} item(s), latest '{state.gallery[0].scenario_label}'")


def _handle_chat(args: argparse.Namespace) -> int:
    run_dir = Path(args.out)
    events_path = Path(args.events) if args.events else run_dir / "events.jsonl"
    engine = StudioEngine(run_dir, events_path, provider=default_provider(args.provider))
    production: list[threading.Thread] = []

    if not engine.credentials_ready:
        print("No provider credentials found; running with placeholder images.")
    print("Atelier studio started. Type /help for commands.")

    def _handle_help(_intent: Intent) -> None:
        for spec in COMMANDS:
            print(f"/{spec.command:<9} {spec.help}")
        print("Scenarios: " + ", ".join(f"{s.id} ({s.label})" for s in SCENARIOS) + ", or any custom text")

    def _handle_upload(intent: Intent) -> None:
        path = Path(str(intent.command_args.get("path") or ""))
        if not str(path) or not path.exists():
            print(f"Upload failed: file not found ({path})")
            return
        try:
            asset = engine.upload_file(path)
        except ValueError as exc:
            print(f"Upload failed: {exc}")
            return
        print(f"Uploaded {asset.display_name} as {asset.id} ({asset.kind.value})")

    def _handle_toggle_share(intent: Intent) -> None:
        try:
            shared = engine.toggle_asset_disclosure(str(intent.command_args.get("id") or ""))
        except ValueError as exc:
            print(exc)
            return
        print("Shared with the agent." if shared else "No longer shared.")

    def _handle_list_assets(_intent: Intent) -> None:
        state = engine.snapshot()
        if not len(state.registry):
            print("No assets uploaded.")
        for entry in state.registry.manifest():
            flag = " [shared]" if entry.id in state.selected_asset_ids else ""
            print(f"{entry.id}: {entry.name} ({entry.kind.value}){flag}")

    def _handle_select(intent: Intent) -> None:
        raw = str(intent.command_args.get("id") or "")
        concept_id = None if raw.lower() in {"", "none"} else raw
        try:
            engine.select_concept(concept_id)
        except ValueError as exc:
            print(exc)
            return
        print(f"Active concept: {concept_id or 'none'}")

    def _handle_finalize(intent: Intent) -> None:
        try:
            pack = engine.finalize_concept(str(intent.command_args.get("id") or ""))
        except ValueError as exc:
            print(exc)
            return
        if pack is None:
            print("Concept finalized; tech pack not available yet.")
            return
        print(f"Tech pack {pack.style_number or '(unnumbered)'}: {len(pack.bom)} BOM item(s)")
        if pack.sourcing_query:
            print(f"Sourcing: {pack.sourcing_query}")

    def _handle_refresh_techpack(intent: Intent) -> None:
        try:
            pack = engine.refresh_tech_pack(str(intent.command_args.get("id") or ""))
        except ValueError as exc:
            print(exc)
            return
        print("Tech pack rebuilt." if pack is not None else "Tech pack not rebuilt.")

    def _handle_edit(intent: Intent) -> None:
        mask_path = intent.command_args.get("mask")
        mask = None
        if mask_path:
            path = Path(str(mask_path))
            if not path.exists():
                print(f"Edit failed: mask not found ({path})")
                return
            mask = MediaBlob(data=path.read_bytes(), mime_type=guess_mime(path))
        outcome = engine.apply_edit(
            str(intent.command_args.get("concept_id") or ""),
            str(intent.command_args.get("image_id") or ""),
            mask,
            str(intent.command_args.get("instruction") or ""),
        )
        if outcome is None:
            print(f"Studio is busy ({engine.status.value}); try again shortly.")
            return
        print(outcome.message)

    def _handle_produce(intent: Intent) -> None:
        concept_id = str(intent.command_args.get("concept_id") or "")
        scenario = str(intent.command_args.get("scenario") or "")
        mode = str(intent.command_args.get("mode") or "photo")

        def _run() -> None:
            try:
                asset = engine.produce(concept_id, scenario, mode)
            except ProductionError as exc:
                print(f"\nProduction failed: {exc}")
                return
            print(f"\nProduced {asset.kind.value} '{asset.scenario_label}' as {asset.id}")
            # Tech packs requested while production held the studio.
            for pack in engine.synthesize_pending():
                print(f"Tech pack {pack.style_number} ready.")

        # Production runs off the input thread so /cancel stays available.
        thread = threading.Thread(target=_run, name="atelier-produce", daemon=True)
        production.append(thread)
        thread.start()
        print(f"Producing {mode} for {concept_id}...")

    def _handle_cancel(_intent: Intent) -> None:
        print("Cancelling production." if engine.cancel_production() else "Nothing to cancel.")

    def _handle_status(_intent: Intent) -> None:
        _print_status(engine.snapshot())

    def _handle_export(intent: Intent) -> None:
        raw = intent.command_args.get("path")
        index = engine.export(Path(str(raw)) if raw else None)
        print(f"Exported to {index}")

    command_handlers = {
        "help": _handle_help,
        "upload": _handle_upload,
        "toggle_share": _handle_toggle_share,
        "list_assets": _handle_list_assets,
        "select": _handle_select,
        "finalize": _handle_finalize,
        "refresh_techpack": _handle_refresh_techpack,
        "edit": _handle_edit,
        "produce": _handle_produce,
        "cancel": _handle_cancel,
        "status": _handle_status,
        "export": _handle_export,
    }

    try:
        while True:
            try:
                line = input("> ")
            except (EOFError, KeyboardInterrupt):
                break
            intent = parse_intent(line)
            if intent.action == "noop":
                continue
            if intent.action == "unknown":
                print(f"Unknown command /{intent.command_args.get('command')}. Type /help.")
                continue
            handler = command_handlers.get(intent.action)
            if handler:
                handler(intent)
                continue
            reply = engine.send_message(intent.prompt or "")
            if reply is None:
                print(f"Studio is busy ({engine.status.value}); message not sent.")
                continue
            if reply.reasoning_note:
                print(f"(thinking) {reply.reasoning_note}")
            print(reply.text)
            if not reply.invocations:
                continue
            for concept in engine.snapshot().concepts:
                state = "ready" if concept.primary is not None else "failed"
                print(f"  {concept.id}: {concept.name} ({state})")
    finally:
        engine.cancel_production()
        for thread in production:
            thread.join(timeout=5)
        engine.close()
    return 0


def main() -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args()
    if args.command == "chat":
        raise SystemExit(_handle_chat(args))
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
