"""Timing and MIDI constants.

Tempo is expressed in beats per minute; one tick of a Player is one beat,
so the tick interval is ``60 / bpm`` seconds.

Timers are shared per resolution. Note and tick timers run at a tenth of
the beat interval (``TIMER_DIVISIONS``), while script reload polling runs on
its own fixed, coarse cadence (``RELOAD_POLL_SECONDS``) so that reload
latency and playback precision can be tuned separately.
"""

DEFAULT_BPM = 120
SECONDS_PER_MINUTE = 60.0

# Timer resolution is the beat interval divided by this.
TIMER_DIVISIONS = 10

RELOAD_POLL_SECONDS = 0.5

MIDI_CHANNELS = 16

DEFAULT_VELOCITY = 100

# Fraction of a beat cut from the end of each pattern note so repeated notes re-articulate.
NOTE_GAP = 0.10

# Metronome click: GM "Woodblock" on a high note, sounded a fixed delay after each beat.
METRONOME_PRESET = 115
METRONOME_NOTE = 84
METRONOME_LENGTH = 0.1
METRONOME_DELAY = 0.2
