# main.py
"""
Main entry point for the particle morph engine.

This script plays the part of the frame scheduler without a renderer:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the engine and seeds its initial shape.
4. Runs the frame loop, feeding scheduled morphs and an optional synthetic
   interaction sweep through the engine's input entry points.
5. Handles clean shutdown.
"""
import logging
import math
import sys
from utils import setup_logging, load_config
import cProfile
import pstats
import io


def sweep_point(step_num: int, fps: float, sweep: dict):
    """Position of a synthetic interaction point circling the origin."""
    t = step_num / fps
    radius = sweep.get('radius', 3.0)
    angle = t * sweep.get('angular_speed', 4.0)
    return (radius * math.cos(angle), radius * math.sin(angle), 0.0)


def main(config_path: str = 'config.json'):
    """
    The main function to run the engine.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"FATAL: Could not load {config_path}. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Particle Morph Engine Starting ---")

    sim_params = config.get('simulation_parameters', {})
    run_params = config.get('run_control', {})

    from engine import Engine

    engine = Engine(sim_params)

    fps = float(run_params.get('fps', 60))
    log_throttle = run_params.get('log_throttle_steps', 100)
    max_steps = run_params.get('max_steps', 600)
    sweep = run_params.get('interaction_sweep', {})

    # Scheduled morphs, keyed by the step before which they take effect.
    schedule = {}
    for entry in run_params.get('morph_schedule', []):
        schedule.setdefault(int(entry['step']), []).append(entry['shape'])

    profiler = cProfile.Profile()
    profiler.enable()
    with engine:
        for step_num in range(max_steps):
            for shape in schedule.get(step_num, []):
                engine.queue_morph(shape)

            if sweep.get('enabled', False):
                start = sweep.get('start_step', 0)
                stop = sweep.get('stop_step', max_steps)
                active = start <= step_num < stop
                engine.set_interaction(active, sweep_point(step_num, fps, sweep))

            engine.step(1.0 / fps)

            # Rule 2.4: Hot loops must throttle logs
            if (step_num + 1) % log_throttle == 0:
                stats = engine.stats()
                logging.info(f"Frame {step_num + 1}/{max_steps} | shape {engine.current_shape}")
                logging.debug(
                    f"Frame {step_num + 1} | Mean speed: {stats['mean_speed']:.4f} | "
                    f"Mean distance to target: {stats['mean_target_distance']:.4f}"
                )
    profiler.disable()

    logging.info("Frame loop finished.")

    logging.info("--- Performance Profile ---")
    s = io.StringIO()
    stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
    stats.print_stats(20)
    logging.info(f"\n{s.getvalue()}")

    logging.info("--- Particle Morph Engine Shutting Down ---")


if __name__ == "__main__":
    main(*sys.argv[1:2])
