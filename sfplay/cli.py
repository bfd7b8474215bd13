"""Interactive command-line player for sfplay.

MIDI channels and program numbers are shown the way musicians read them:
channels 1-16, programs 0-127 (the GM table numbering). The session runs on
an asyncio loop in a background thread; commands submit coroutines to it.
"""

from __future__ import annotations

import asyncio
import cmd
import threading

from sfplay.bank import SampleBank
from sfplay.deps import HAS_MIDO, HAS_PEDALBOARD, HAS_SOUNDDEVICE, sd
from sfplay.errors import SfplayError
from sfplay.models import LoadFailed, PlaybackEnded, TransportState, TriggerFailed
from sfplay.programs import GM_FAMILIES, GM_INSTRUMENTS, family_for, programs_in_family
from sfplay.session import PlaybackSession


def start_loop_thread() -> tuple[asyncio.AbstractEventLoop, threading.Thread]:
    """Run a fresh event loop forever in a daemon thread."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, name="sfplay-loop", daemon=True)
    thread.start()
    return loop, thread


def format_programs(family: str = "") -> list[str]:
    """Lines of the GM table, optionally limited to one family."""
    if family:
        programs = programs_in_family(family)
        if not programs:
            return [f"Unknown family '{family}'. Families: {', '.join(GM_FAMILIES)}"]
    else:
        programs = list(range(len(GM_INSTRUMENTS)))
    lines = []
    current = None
    for prog in programs:
        fam = family_for(prog)
        if fam != current:
            lines.append(f"{fam}:")
            current = fam
        lines.append(f"  {prog:>3}  {GM_INSTRUMENTS[prog]}")
    return lines


class PlayerCLI(cmd.Cmd):
    intro = r"""
============================================================
  sfplay  -  General MIDI file player on sample banks
============================================================
Type 'help' for available commands.
"""
    prompt = "sfplay> "

    def __init__(self, session: PlaybackSession, loop: asyncio.AbstractEventLoop,
                 bank: SampleBank = None, stdout=None):
        super().__init__(stdout=stdout)
        self.session = session
        self.bank = bank
        self._loop = loop
        self._loop.call_soon_threadsafe(session.add_listener, self._on_session_event)

    # -- helpers for redirectable output / loop access -----------------------

    def _print(self, *args, **kwargs):
        """Print to self.stdout so output can be captured."""
        kwargs.setdefault("file", self.stdout)
        print(*args, **kwargs)

    def _run(self, coro, timeout: float = None):
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout)

    def _on_session_event(self, item):
        if isinstance(item, PlaybackEnded):
            self._print("\n  [end of file]")
        elif isinstance(item, LoadFailed):
            if item.fatal:
                self._print(f"\n  Error: {item.error}")
            else:
                self._print(f"\n  {item.identity} unavailable, using {item.fallback}")
        elif isinstance(item, TriggerFailed):
            self._print(f"\n  dropped note {item.pitch} on ch {item.channel + 1}: {item.error}")

    # -- file / transport ----------------------------------------------------

    def do_open(self, arg):
        """Load a MIDI file: open <path.mid>"""
        path = arg.strip()
        if not path:
            self._print("Usage: open <path.mid>")
            return
        self._print("  Loading MIDI & instruments...")
        try:
            self._run(self.session.load(path))
        except SfplayError as e:
            self._print(f"Error: {e}")
            return
        self._print(f"  Loaded: {self.session.file_name} "
                    f"({self.session.duration:.1f}s)")

    do_load = do_open

    def do_play(self, arg):
        """Start or resume playback."""
        try:
            self._run(self.session.play())
        except (SfplayError, RuntimeError) as e:
            self._print(f"Error: {e}")

    def do_pause(self, arg):
        """Pause playback (resume with 'play')."""
        self._run(self.session.pause())

    def do_stop(self, arg):
        """Stop playback and rewind."""
        self._run(self.session.stop())

    def do_test(self, arg):
        """Play C4 then G4 on the default piano: test [seconds between notes]"""
        try:
            interval = float(arg) if arg.strip() else 0.8
        except ValueError:
            self._print("Usage: test [seconds]")
            return
        self._print(f"  Testing {self.session.cache.default_identity} (C4, G4)...")
        try:
            self._run(self.session.play_test_notes(interval))
        except (SfplayError, RuntimeError) as e:
            self._print(f"Error: {e}")
            return
        self._print("  Test complete.")

    def do_unload(self, arg):
        """Unload the current file."""
        self._run(self.session.unload())

    # -- inspection ----------------------------------------------------------

    async def _snapshot(self):
        router = self.session.router
        return {
            "state": self.session.state,
            "position": self.session.position,
            "channels": router.channels.snapshot() if router else [],
            "notes": len(router.notes) if router else 0,
        }

    def do_status(self, arg):
        """Transport, device and cache status."""
        snap = self._run(self._snapshot())
        state: TransportState = snap["state"]
        self._print("=== sfplay Status ===")
        self._print(f"  File    : {self.session.file_name or '-'}")
        self._print(f"  State   : {state.value.upper()}  "
                    f"({snap['position']:.1f}s / {self.session.duration:.1f}s)")
        self._print(f"  Audio   : {self.session.device.state}  "
                    f"(sr={self.session.player.sample_rate} "
                    f"voices={self.session.player.active_voices})")
        self._print(f"  Notes   : {snap['notes']} sounding")
        loaded = self.session.cache.loaded_identities()
        self._print(f"  Cache   : {', '.join(loaded) or '(empty)'}")
        if self.session.cache.failed:
            self._print(f"  Fallback: {', '.join(sorted(self.session.cache.failed))}")
        if self.session.error:
            self._print(f"  Error   : {self.session.error}")

    def do_channels(self, arg):
        """Show the instrument assigned to each MIDI channel."""
        snap = self._run(self._snapshot())
        if not snap["channels"]:
            self._print("  No file loaded.")
            return
        for cs in snap["channels"]:
            self._print(f"  ch {cs.channel + 1:>2} -> {cs.instrument}")

    def do_programs(self, arg):
        """List GM programs: programs [family]"""
        for line in format_programs(arg.strip()):
            self._print(line)

    def do_bank(self, arg):
        """List instruments available in the sample bank."""
        if self.bank is None:
            self._print("  No sample bank configured.")
            return
        names = self.bank.available()
        if not names:
            self._print(f"  No instruments in {self.bank.root}")
            return
        for name in names:
            self._print(f"  {name}")

    def do_devices(self, arg):
        """List audio devices."""
        if HAS_SOUNDDEVICE:
            self._print(sd.query_devices())
        else:
            self._print("  sounddevice not installed")

    def do_deps(self, arg):
        """Check dependencies."""
        for name, ok in [("pedalboard", HAS_PEDALBOARD), ("mido", HAS_MIDO),
                         ("sounddevice", HAS_SOUNDDEVICE)]:
            self._print(f"  {name}: {'OK' if ok else 'MISSING'}")

    def do_quit(self, arg):
        """Stop playback, release audio and exit."""
        self._run(self.session.close())
        return True

    do_exit = do_quit
    do_EOF = do_quit
