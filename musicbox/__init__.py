"""
musicbox - a generative ambient note stream for Python.

musicbox never repeats itself. It walks graphs of related chords and rhythm
cells to build eight-bar phrases, then places notes over them with a
self-exciting point process, so melodies gather in loose bursts around the
written rhythm and thin out again. It produces plain MIDI, either live to a
port or rendered straight to a file.

What it is made of:

- **Pitch-class sets from necklaces.** Every chord in the twelve-tone
  universe is enumerated exactly once from binary necklaces, in an order
  that never changes, so graphs can be precomputed and reloaded.
- **Relation graphs.** Chords are related by shared tones and
  interval-vector similarity; rhythm cells by appearing side by side in a
  corpus of two-bar patterns. A random walker moves over each graph.
- **Phrases.** Either an arch over a five-step walk, or four consonant
  subsets of a bebop scale that moves a fifth each phrase, sorted against
  the key and laid out two bars each.
- **Hawkes voice.** Onsets follow a Hawkes process, sampled with Ogata
  thinning. Base rate, excitation and decay are set per bar, so the
  texture holds at any tempo.
- **Patterned voices.** Optional strum and arpeggio voices play the same
  chords in strict rhythm.
- **Live or offline.** A lookahead scheduler plays to a MIDI port; the same
  engine renders phrases to a Standard MIDI File without a clock.
- **OSC.** Tempo and process parameters can be controlled over OSC, and
  chord, note and phrase changes are broadcast.

Minimal example:

    ```python
    import musicbox

    engine = musicbox.Engine()
    events = engine.render_bars(8)

    for event in events[:5]:
        print(f"{event.time:.2f}s  note {event.midi_note}")
    ```

Package-level exports: ``Engine``, ``EngineConfig``, ``OnsetEvent``, ``PitchClassSet``.
"""

import musicbox.config
import musicbox.engine
import musicbox.pitch_class_set


Engine = musicbox.engine.Engine
EngineConfig = musicbox.config.EngineConfig
OnsetEvent = musicbox.engine.OnsetEvent
PitchClassSet = musicbox.pitch_class_set.PitchClassSet
