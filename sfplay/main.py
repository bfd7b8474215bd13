"""Entry point and argument parsing for sfplay.

Subcommands
-----------
play      Play one MIDI file to the end and exit.
cli       Open the interactive player shell.
test      Play C4 then G4 on the default piano.
programs  Print the General MIDI program table.
bank      List the instruments found in a sample bank.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sfplay.bank import SUPPORTED_FORMATS, SampleBank
from sfplay.deps import HAS_PEDALBOARD, Reverb
from sfplay.device import AudioDevice
from sfplay.engine import SamplePlayer
from sfplay.errors import SfplayError
from sfplay.logging_setup import configure_logging
from sfplay.paths import DEFAULT_BANK_PATH
from sfplay.session import PlaybackSession


logger = logging.getLogger(__name__)


# -- shared helpers ----------------------------------------------------------

def _add_bank_args(parser: argparse.ArgumentParser):
    parser.add_argument("--bank", default=str(DEFAULT_BANK_PATH),
                        help=f"Sample bank directory (default: {DEFAULT_BANK_PATH})")
    parser.add_argument("--format", default="mp3", choices=SUPPORTED_FORMATS,
                        help="Sample file format in the bank")
    parser.add_argument("--sr", type=int, default=44100, help="Sample rate")


def _add_player_args(parser: argparse.ArgumentParser):
    """Add arguments used when starting a playback session."""
    _add_bank_args(parser)
    parser.add_argument("--buf", type=int, default=512, help="Buffer size")
    parser.add_argument("--output", default=None, help="Audio output device")
    parser.add_argument("--release", type=float, default=0.2,
                        help="Note release time in seconds")
    parser.add_argument("--reverb", type=float, default=None, metavar="ROOM",
                        help="Add a master reverb with this room size (0-1)")
    parser.add_argument("--percussion-bank", default=None, metavar="IDENTITY",
                        help="Pin MIDI channel 10 to this bank instrument "
                             "(e.g. percussion) and ignore its program changes")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More log output (-vv for debug)")


def _build_session(args) -> tuple[PlaybackSession, SampleBank]:
    """Create the bank, player, device and session from parsed arguments."""
    bank = SampleBank(args.bank, fmt=args.format, sample_rate=args.sr)
    player = SamplePlayer(sample_rate=args.sr, release=args.release)
    if args.reverb is not None:
        if not HAS_PEDALBOARD:
            raise RuntimeError("pedalboard not installed")
        player.master_effects.append(Reverb(room_size=args.reverb))

    output_device = args.output
    if isinstance(output_device, str) and output_device.isdigit():
        output_device = int(output_device)
    device = AudioDevice(player, output_device=output_device, buffer_size=args.buf)

    session = PlaybackSession(bank, device=device, player=player,
                              percussion_identity=args.percussion_bank)
    return session, bank


# -- subcommand handlers -----------------------------------------------------

async def _play_file(session: PlaybackSession, path: str) -> int:
    try:
        await session.load(path)
        await session.play()
        await session.wait_finished()
    finally:
        await session.close()
    if session.error:
        logger.error("%s", session.error)
        return 1
    return 0


async def _test_notes(session: PlaybackSession, gap: float, hold: float) -> int:
    try:
        await session.play_test_notes(gap)
        # let the last note ring before the stream closes
        await asyncio.sleep(hold)
    finally:
        await session.close()
    return 0


def _cmd_play(args) -> int:
    """Play a file to the end."""
    configure_logging(default_level="WARNING", verbose=args.verbose)
    session, _bank = _build_session(args)
    try:
        return asyncio.run(_play_file(session, args.file))
    except (SfplayError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


def _cmd_cli(args) -> int:
    """Open the interactive shell."""
    from sfplay.cli import PlayerCLI, start_loop_thread

    configure_logging(default_level="WARNING", verbose=args.verbose)
    session, bank = _build_session(args)
    loop, thread = start_loop_thread()
    shell = PlayerCLI(session, loop, bank=bank)
    if args.file:
        shell.onecmd(f"open {args.file}")
    try:
        shell.cmdloop()
    except KeyboardInterrupt:
        shell.onecmd("quit")
    finally:
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=2.0)
    return 0


def _cmd_test(args) -> int:
    """Play C4 then G4 on the default instrument."""
    configure_logging(default_level="WARNING", verbose=args.verbose)
    session, _bank = _build_session(args)
    try:
        return asyncio.run(_test_notes(session, args.gap, args.hold))
    except (SfplayError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


def _cmd_programs(args) -> int:
    from sfplay.cli import format_programs

    for line in format_programs(" ".join(args.family)):
        print(line)
    return 0


def _cmd_bank(args) -> int:
    bank = SampleBank(args.bank, fmt=args.format, sample_rate=args.sr)
    names = bank.available()
    if not names:
        print(f"No {args.format} instruments in {bank.root}")
        return 1
    for name in names:
        print(name)
    return 0


# -- main --------------------------------------------------------------------

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(
        description="sfplay - General MIDI file player on sample banks")
    sub = ap.add_subparsers(dest="command")

    # -- play ----------------------------------------------------------------
    sp_play = sub.add_parser("play", help="Play a MIDI file and exit")
    _add_player_args(sp_play)
    sp_play.add_argument("file", help="Path to a .mid/.midi file")
    sp_play.set_defaults(func=_cmd_play)

    # -- cli -----------------------------------------------------------------
    sp_cli = sub.add_parser("cli", help="Interactive player shell")
    _add_player_args(sp_cli)
    sp_cli.add_argument("file", nargs="?", default=None,
                        help="Optional file to open on start")
    sp_cli.set_defaults(func=_cmd_cli)

    # -- test ----------------------------------------------------------------
    sp_test = sub.add_parser("test", help="Play C4 and G4 to check the audio path")
    _add_player_args(sp_test)
    sp_test.add_argument("--gap", type=float, default=0.8,
                         help="Seconds between the two notes")
    sp_test.add_argument("--hold", type=float, default=1.5,
                         help="Seconds to keep the stream open afterwards")
    sp_test.set_defaults(func=_cmd_test)

    # -- programs ------------------------------------------------------------
    sp_prog = sub.add_parser("programs", help="Print the GM program table")
    sp_prog.add_argument("family", nargs="*",
                         help="Only this family, e.g. 'strings'")
    sp_prog.set_defaults(func=_cmd_programs)

    # -- bank ----------------------------------------------------------------
    sp_bank = sub.add_parser("bank", help="List instruments in a sample bank")
    _add_bank_args(sp_bank)
    sp_bank.set_defaults(func=_cmd_bank)

    args = ap.parse_args(argv)
    if args.command is None:
        ap.error("a command is required: play, cli, test, programs or bank")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
