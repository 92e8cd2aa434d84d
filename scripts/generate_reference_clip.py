#!/usr/bin/env python3
"""Generate a synthetic reference clip for trying out Pronounce by hand.

Produces a ~125-second mono WAV with alternating tones and silences so that
range selection is easy to verify by ear:
  every 10s block: 440/660/880 Hz tone for 6s, then 4s of silence
"""

import subprocess
import sys
from pathlib import Path

BLOCKS = 12
TONES = (440, 660, 880)


def generate_reference_clip(output: Path, tail_seconds: float = 5.4) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    parts: list[str] = []
    labels: list[str] = []
    for i in range(BLOCKS):
        freq = TONES[i % len(TONES)]
        parts.append(f"sine=f={freq}:d=6[t{i}]")
        parts.append(f"anullsrc=r=44100:cl=mono:d=4[s{i}]")
        labels.append(f"[t{i}][s{i}]")
    parts.append(f"sine=f=440:d={tail_seconds}[tail]")
    labels.append("[tail]")
    parts.append(f"{''.join(labels)}concat=n={2 * BLOCKS + 1}:v=0:a=1[aout]")

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", ";".join(parts),
        "-map", "[aout]",
        "-ac", "1",
        "-ar", "44100",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("reference.wav")
    generate_reference_clip(out)
