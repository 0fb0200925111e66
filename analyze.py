"""CLI entry point for Pitch Estimator."""
from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from pitch_estimator.postprocess import (
    PitchEstimate, PostprocessConfig, collapse_note_names,
)
from pitch_estimator.predictor import DEFAULT_MODEL, PredictorFailureError, SAMPLE_RATE


def run_estimation(
    audio_path: Path,
    model_path: Path,
    num_threads: int,
    config: PostprocessConfig,
) -> PitchEstimate:
    """Load the clip, run SPICE and post-process its output."""
    from pitch_estimator.audio import load_clip
    from pitch_estimator.estimator import PitchEstimator
    from pitch_estimator.predictor import SpiceConfig, SpicePredictor

    samples = load_clip(audio_path)
    print(f"[SPICE] Loaded {len(samples) / SAMPLE_RATE:.1f}s at {SAMPLE_RATE}Hz")

    predictor = SpicePredictor(SpiceConfig(model_path=model_path, num_threads=num_threads))
    with PitchEstimator(predictor, config) as estimator:
        return estimator.execute(samples)


def print_results(estimate: PitchEstimate, label: str) -> None:
    """Pretty-print estimation results to stdout."""
    print(f"\n{'=' * 50}")
    print(f"  {label}")
    print(f"{'=' * 50}")
    print(f"  Frames:       {len(estimate.hz_values)} ({estimate.voiced_count} confident)")
    if not estimate.has_offset:
        print("  Offset:       n/a (no confident frames)")
        print()
        return
    print(f"  Offset:       {estimate.ideal_offset:+.3f} semitones")
    print(f"\n  Notes (offset corrected):")
    for note, count in collapse_note_names(estimate.note_names()):
        bar = "#" * count
        print(f"    {note:>4s}: {count:3d} {bar}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Estimate the pitch of a sung clip and its offset from equal temperament.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  python analyze.py humming.wav --model lite-model_spice_1.tflite
  python analyze.py humming.wav --confidence 0.8 --output results/
        """,
    )
    parser.add_argument("audio_file", type=Path, help="Path to audio file (wav, flac, ogg)")
    parser.add_argument("--model", type=Path, default=Path(DEFAULT_MODEL),
                        help=f"Path to the SPICE TFLite model (default: {DEFAULT_MODEL})")
    parser.add_argument("--threads", type=int, default=4,
                        help="Interpreter threads (default: 4)")
    parser.add_argument("--confidence", type=float, default=0.9,
                        help="Confidence threshold for pitch frames (default: 0.9)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output directory for the contour chart")
    parser.add_argument("--no-plot", action="store_true",
                        help="Skip chart generation")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log diagnostic output")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not args.audio_file.exists():
        print(f"Error: File not found: {args.audio_file}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        args.output.mkdir(parents=True, exist_ok=True)

    t0 = time.time()
    try:
        config = PostprocessConfig(confidence_threshold=args.confidence)
        estimate = run_estimation(args.audio_file, args.model, args.threads, config)
        print_results(estimate, "SPICE")

        if not args.no_plot and args.output and estimate.voiced_count:
            from pitch_estimator.visualization import plot_pitch_contour
            plot_pitch_contour(
                estimate,
                title=f"{args.audio_file.stem} - Pitch Contour",
                output_path=args.output / "contour.png",
            )
            print(f"  Chart saved to {args.output}/")

    except (PredictorFailureError, FileNotFoundError, ValueError, ImportError) as e:
        print(f"  Error: {e}", file=sys.stderr)
        sys.exit(1)

    elapsed = time.time() - t0
    print(f"  Time: {elapsed:.1f}s")


if __name__ == "__main__":
    main()
