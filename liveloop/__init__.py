"""
liveloop - a live-coding scheduler for discrete musical events.

liveloop plays a Python script that registers what should happen on every
beat, and reloads it whenever the file changes, without stopping playback.
If a new version fails to load, the old one keeps playing. If a version
fails while playing, liveloop falls back to the version before it.

Pieces:

- **Timers.** ``Scheduler.get(resolution)`` returns a shared dispatch loop;
  ``timer.at(time, callback)`` fires ``callback`` once ``time`` has passed,
  and returns a handle that can cancel it. A failing callback never stops
  the loop.
- **Patterns.** ``Pattern(60, "1=2 -==3")`` parses a rhythm string: digits
  are scale-degree offsets, ``-`` is a rest, ``=`` ties onto the previous
  cell. Indexing wraps forever.
- **Players.** A tempo plus ordered ``bang`` and ``close`` subscribers.
- **Monitor.** Watches a script, keeps a history of working Players, drives
  ticks against the newest one, and rolls back on failure.
- **Output.** Hands out channels and schedules note on/off pairs on any
  Sound Sink (MIDI through mido, or a log).

A script for ``python -m liveloop song.py``:

    ```python
    bpm(110)

    output.reset()
    piano = output.instrument(0)
    bass = output.instrument(33)

    bang(piano.pattern(60, "1=2 3 5 -- 4=="))
    bang(bass.pattern(36, "0=== 3=== 5=== 4==="))
    ```

Package-level exports: ``Monitor``, ``Output``, ``Pattern``, ``Player``, ``Scheduler``.
"""

import liveloop.monitor
import liveloop.output
import liveloop.pattern
import liveloop.player
import liveloop.timer


Monitor = liveloop.monitor.Monitor
Output = liveloop.output.Output
Pattern = liveloop.pattern.Pattern
Player = liveloop.player.Player
Scheduler = liveloop.timer.Scheduler
