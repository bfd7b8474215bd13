"""General MIDI program number -> instrument identity table.

Identities are the snake_case names used by the midi-js-soundfonts sample
banks, so they double as directory names in :mod:`sfplay.bank`.
"""

from __future__ import annotations

from typing import Optional

DEFAULT_IDENTITY = "acoustic_grand_piano"

GM_FAMILIES = (
    "piano",
    "chromatic percussion",
    "organ",
    "guitar",
    "bass",
    "strings",
    "ensemble",
    "brass",
    "reed",
    "pipe",
    "synth lead",
    "synth pad",
    "synth effects",
    "ethnic",
    "percussive",
    "sound effects",
)

GM_INSTRUMENTS = (
    # piano (0-7)
    "acoustic_grand_piano", "bright_acoustic_piano", "electric_grand_piano",
    "honkytonk_piano", "electric_piano_1", "electric_piano_2", "harpsichord",
    "clavinet",
    # chromatic percussion (8-15)
    "celesta", "glockenspiel", "music_box", "vibraphone", "marimba",
    "xylophone", "tubular_bells", "dulcimer",
    # organ (16-23)
    "drawbar_organ", "percussive_organ", "rock_organ", "church_organ",
    "reed_organ", "accordion", "harmonica", "tango_accordion",
    # guitar (24-31)
    "acoustic_guitar_nylon", "acoustic_guitar_steel", "electric_guitar_jazz",
    "electric_guitar_clean", "electric_guitar_muted", "overdriven_guitar",
    "distortion_guitar", "guitar_harmonics",
    # bass (32-39)
    "acoustic_bass", "electric_bass_finger", "electric_bass_pick",
    "fretless_bass", "slap_bass_1", "slap_bass_2", "synth_bass_1",
    "synth_bass_2",
    # strings (40-47)
    "violin", "viola", "cello", "contrabass", "tremolo_strings",
    "pizzicato_strings", "orchestral_harp", "timpani",
    # ensemble (48-55)
    "string_ensemble_1", "string_ensemble_2", "synth_strings_1",
    "synth_strings_2", "choir_aahs", "voice_oohs", "synth_choir",
    "orchestra_hit",
    # brass (56-63)
    "trumpet", "trombone", "tuba", "muted_trumpet", "french_horn",
    "brass_section", "synth_brass_1", "synth_brass_2",
    # reed (64-71)
    "soprano_sax", "alto_sax", "tenor_sax", "baritone_sax", "oboe",
    "english_horn", "bassoon", "clarinet",
    # pipe (72-79)
    "piccolo", "flute", "recorder", "pan_flute", "blown_bottle", "shakuhachi",
    "whistle", "ocarina",
    # synth lead (80-87)
    "lead_1_square", "lead_2_sawtooth", "lead_3_calliope", "lead_4_chiff",
    "lead_5_charang", "lead_6_voice", "lead_7_fifths", "lead_8_bass_lead",
    # synth pad (88-95)
    "pad_1_new_age", "pad_2_warm", "pad_3_polysynth", "pad_4_choir",
    "pad_5_bowed", "pad_6_metallic", "pad_7_halo", "pad_8_sweep",
    # synth effects (96-103)
    "fx_1_rain", "fx_2_soundtrack", "fx_3_crystal", "fx_4_atmosphere",
    "fx_5_brightness", "fx_6_goblins", "fx_7_echoes", "fx_8_sci_fi",
    # ethnic (104-111)
    "sitar", "banjo", "shamisen", "koto", "kalimba", "bagpipe", "fiddle",
    "shanai",
    # percussive (112-119)
    "tinkle_bell", "agogo", "steel_drums", "woodblock", "taiko_drum",
    "melodic_tom", "synth_drum", "reverse_cymbal",
    # sound effects (120-127)
    "guitar_fret_noise", "breath_noise", "seashore", "bird_tweet",
    "telephone_ring", "helicopter", "applause", "gunshot",
)

PROGRAMS_PER_FAMILY = 8

_PROGRAM_BY_IDENTITY = {name: prog for prog, name in enumerate(GM_INSTRUMENTS)}


def _is_program(program) -> bool:
    # bool is an int subclass but never a program number
    return (isinstance(program, int) and not isinstance(program, bool)
            and 0 <= program < len(GM_INSTRUMENTS))


def identity_for(program) -> str:
    """Return the instrument identity for a GM program number.

    Total: anything that is not an int in 0-127 resolves to
    ``DEFAULT_IDENTITY``.
    """
    if not _is_program(program):
        return DEFAULT_IDENTITY
    return GM_INSTRUMENTS[program]


def family_for(program) -> str:
    if not _is_program(program):
        return GM_FAMILIES[0]
    return GM_FAMILIES[program // PROGRAMS_PER_FAMILY]


def program_for(identity: str) -> Optional[int]:
    return _PROGRAM_BY_IDENTITY.get(identity)


def programs_in_family(family: str) -> list[int]:
    """Program numbers of a family, matched case-insensitively."""
    try:
        idx = GM_FAMILIES.index(family.strip().lower())
    except ValueError:
        return []
    start = idx * PROGRAMS_PER_FAMILY
    return list(range(start, start + PROGRAMS_PER_FAMILY))
