#!/usr/bin/env python3
"""
Debug one pathology's waveform: segment windows, per-segment contributions
and how intermittency plays out over the first beats.

Usage: python debug_pathology.py [pathology] [beats]
"""
import sys
sys.path.append('.')

from ecg_lab.api_models import PathologyType
from ecg_lab.pathologies import get_pathology_config, get_pathology_display_name
from ecg_lab.rhythm_logic import WaveformSynthesizer, effective_modifiers, is_dropped_beat, should_show_abnormality
from ecg_lab.waveform_primitives import (
    effective_pr_interval, qrs_end, st_end, t_wave_duration,
    generate_p_wave, generate_pr_segment, generate_qrs_complex, generate_st_segment, generate_t_wave,
)

def debug_pathology(pathology, beats=8):
    synthesizer = WaveformSynthesizer()
    config = get_pathology_config(pathology)
    modifiers = synthesizer.resolve_modifiers(pathology)

    print(f"=== {get_pathology_display_name(config.pathology)} ===")
    print(f"Rate {config.heart_rate_bpm:g} bpm, amplitude {config.amplitude}, noise {config.noise}")
    print(f"Non-default modifiers: {modifiers.model_dump(exclude_defaults=True)}")
    print()

    print("=== Beat Sequence ===")
    print("Beat\tShown\tDropped\tPR\tQRS end\tST end\tT end")
    print("-" * 60)
    for beat_index in range(beats):
        shown = should_show_abnormality(beat_index, modifiers)
        beat_modifiers = effective_modifiers(config.pathology, modifiers, beat_index, shown)
        t_end = st_end(beat_modifiers) + t_wave_duration(beat_modifiers)
        print(
            f"{beat_index}\t{shown}\t{is_dropped_beat(beat_index, beat_modifiers)}\t"
            f"{effective_pr_interval(beat_modifiers, beat_index):.2f}\t{qrs_end(beat_modifiers):.3f}\t"
            f"{st_end(beat_modifiers):.3f}\t{t_end:.3f}"
        )
    print()

    print("=== Segment Contributions (beat 0, no noise) ===")
    print("Phase\tP\tPR\tQRS\tST\tT\tSample")
    print("-" * 60)
    for step in range(0, 100, 4):
        phase = step / 100
        print(
            f"{phase:.2f}\t{generate_p_wave(phase, modifiers):6.3f}\t{generate_pr_segment(phase, modifiers):6.3f}\t"
            f"{generate_qrs_complex(phase, modifiers):6.3f}\t{generate_st_segment(phase, modifiers):6.3f}\t"
            f"{generate_t_wave(phase, modifiers):6.3f}\t{synthesizer.synthesize(phase, config, 0):6.3f}"
        )

if __name__ == "__main__":
    pathology = sys.argv[1] if len(sys.argv) > 1 else PathologyType.NORMAL.value
    beats = int(sys.argv[2]) if len(sys.argv) > 2 else 8
    debug_pathology(pathology, beats)
