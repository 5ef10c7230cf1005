#!/usr/bin/env python
"""
Enemy DRL Training Script
=========================

Runs the on-line learning core against the reference duel arena.

Usage:
    # Quick debug run
    python train.py --mode debug --ticks 500

    # Default hyperparameters
    python train.py --mode default --name my_run --plot

    # Earliest shipped update rule
    python train.py --mode legacy

    # Custom config, torch batched evaluation
    python train.py --config my_config.json --backend torch

Author: Enemy DRL Team
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Train the enemy Q-learning core in a duel arena",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python train.py --mode debug              # Small network, fast syncs
  python train.py --mode default            # Default hyperparameters
  python train.py --mode legacy             # Plain SGD + legacy input gradient
  python train.py --config my_config.json   # Custom configuration
        """
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=["default", "debug", "legacy"],
        default="default",
        help="Configuration preset (default: default)"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to custom config JSON file"
    )

    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Experiment name (default: auto-generated)"
    )

    parser.add_argument(
        "--output",
        type=str,
        default="outputs",
        help="Output directory (default: outputs)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (default: from config)"
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=["numpy", "torch"],
        default=None,
        help="Batched Q evaluation backend (default: from config)"
    )

    # Run length
    parser.add_argument("--ticks", type=int, default=5000, help="Ticks to simulate")
    parser.add_argument("--agents", type=int, default=4, help="Enemies alive at once")
    parser.add_argument("--dt", type=float, default=0.1, help="Time per tick")

    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save a loss curve PNG after training"
    )

    return parser.parse_args()


def get_config(args):
    """Get engine configuration from args."""
    from training.config import (
        DrlConfig,
        get_default_config,
        get_debug_config,
        get_legacy_config
    )

    # Load from file or preset
    if args.config:
        config = DrlConfig.load(args.config)
        print(f"Loaded config from: {args.config}")
    else:
        config_map = {
            "default": get_default_config,
            "debug": get_debug_config,
            "legacy": get_legacy_config
        }
        config = config_map[args.mode]()
        print(f"Using preset: {args.mode}")

    # Apply overrides
    if args.name:
        config.experiment_name = args.name
    elif not args.config:
        import datetime
        timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        config.experiment_name = f"{args.mode}_{timestamp}"

    if args.output:
        config.output_dir = args.output

    if args.seed is not None:
        config.seed = args.seed
    if args.backend is not None:
        config.network.backend = args.backend

    config.validate()
    return config


def run(config, ticks: int, num_agents: int, dt: float) -> dict:
    """
    Drive the engine with the duel arena for a number of ticks.

    Host loop per tick:
        1. Collect observations, masks, cooldowns and rewards
        2. engine.tick() (selection, training, removal sweep)
        3. Apply chosen actions, advance the arena and the engine timers
        4. Mark dead enemies for removal, spawn replacements

    Returns:
        Final engine statistics
    """
    from environment.arena import DuelArena
    from training.engine import AgentTickInput, DrlEngine
    from training.metrics import MetricsLogger

    metrics = MetricsLogger(config.output_dir, config.experiment_name)
    config.save(metrics.output_dir / "config.json")

    arena = DuelArena(
        num_enemies=num_agents,
        arena_radius=20.0,
        seed=config.seed
    )
    engine = DrlEngine(
        config,
        metrics=metrics,
        on_remove=arena.remove_enemy
    )

    for enemy_id in arena.reset():
        engine.add_agent(enemy_id)

    try:
        for _ in range(ticks):
            inputs = {
                enemy_id: AgentTickInput(
                    observation=arena.observation(enemy_id),
                    mask=arena.action_mask(enemy_id),
                    cooldowns=arena.cooldowns(enemy_id),
                    reward=arena.collect_reward(enemy_id)
                )
                for enemy_id in list(arena.enemies)
            }

            decisions = engine.tick(inputs)
            arena.apply_actions({
                enemy_id: decision.action for enemy_id, decision in decisions.items()
            })

            dead = arena.step(dt)
            engine.advance(dt)

            for enemy_id in dead:
                engine.mark_for_removal(enemy_id)
                if arena.respawn:
                    engine.add_agent(arena.spawn_enemy())

        stats = engine.stats()
        stats["arena_deaths"] = arena.total_deaths
        stats["arena_spawned"] = arena.total_spawned

        metrics.save()
        return stats

    finally:
        engine.close()


def main():
    """Main training entry point."""
    args = parse_args()

    print("=" * 70)
    print("ENEMY DRL ENGINE")
    print("On-line Q-learning for real-time game enemies")
    print("=" * 70)
    print()

    config = get_config(args)

    logging.basicConfig(
        level=logging.DEBUG if config.enable_debug_logging else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    print(f"Experiment: {config.experiment_name}")
    print(f"Ticks: {args.ticks:,} | Agents: {args.agents} | dt: {args.dt}")
    print(f"Update rule: {config.learning.update_rule} | "
          f"Input gradient: {config.learning.input_gradient} | "
          f"Backend: {config.network.backend}")
    print()

    try:
        stats = run(config, args.ticks, args.agents, args.dt)
    except KeyboardInterrupt:
        print("\n\nTraining interrupted by user.")
        return 1

    print("\nFinal Results:")
    print(f"  Training passes: {stats['total_passes']:,}")
    print(f"  Target syncs: {stats['target_syncs']}")
    print(f"  Last loss: {stats['loss']:.2f} (EMA {stats['loss_ema']:.4f})")
    print(f"  Skipped samples: {stats['total_skipped']}")
    print(f"  Mean epsilon: {stats['mean_epsilon']:.3f}")
    print(f"  Enemy deaths: {stats['arena_deaths']}")

    if args.plot:
        from visualization.plots import load_history, plot_loss_curve

        experiment_dir = Path(config.output_dir) / config.experiment_name
        history = load_history(experiment_dir)
        if history.get("tick"):
            plot_loss_curve(history, save_path=experiment_dir / "loss_curve.png")
        else:
            print("No training passes recorded, skipping plot")

    return 0


if __name__ == "__main__":
    sys.exit(main())
