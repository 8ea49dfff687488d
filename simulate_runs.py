#!/usr/bin/env python3
"""
Run Simulation Script for Balancing

Plays headless solo runs with a simple auto-player and collects statistics
(games won per run, score, overload damage taken, defeat causes) to help
tune targets, overload progression and artefacts.
Supports parallel execution for faster simulations.
"""

from __future__ import annotations

import logging
import random
import multiprocessing as mp
from collections import Counter
from dataclasses import dataclass, field

from spellwall.controller import SoloRunController
from spellwall.config import SoloRunConfig, DEFAULT_CONFIG, load_config
from spellwall.models import SoloRunState
from spellwall.types import ArtefactId, RunStatus, RuneType, SourceId, CENTER_SOURCE_ID, RUNE_TYPES
from spellwall.events import OverloadEvent, DefeatEvent, SegmentResolvedEvent, GameEvent
from spellwall.drafting import draft_from_source
from spellwall.lines import find_best_pattern_line
from spellwall.rules import validate_draft, validate_pattern_line_placement

logger = logging.getLogger(__name__)

AI_RANDOM = "random"
AI_GREEDY = "greedy"
AI_TYPES = (AI_RANDOM, AI_GREEDY)

MAX_ACTIONS_PER_RUN = 20000


# =============================================================================
# Statistics Data Structures
# =============================================================================


@dataclass
class RunStats:
    """Aggregate statistics over many runs."""

    total_runs: int = 0
    total_games_won: int = 0
    best_run: int = 0
    total_score: int = 0
    total_games_played: int = 0
    total_overload_damage: int = 0
    total_segments: int = 0
    total_segment_size: int = 0
    defeat_reasons: Counter = field(default_factory=Counter)

    @property
    def average_games_won(self) -> float:
        return self.total_games_won / self.total_runs if self.total_runs > 0 else 0.0

    @property
    def average_score(self) -> float:
        """Average final rune score per game played."""
        return self.total_score / self.total_games_played if self.total_games_played > 0 else 0.0

    @property
    def average_overload_damage(self) -> float:
        return self.total_overload_damage / self.total_runs if self.total_runs > 0 else 0.0

    @property
    def average_segment_size(self) -> float:
        return self.total_segment_size / self.total_segments if self.total_segments > 0 else 0.0


# =============================================================================
# Auto-Players
# =============================================================================


def _legal_drafts(state: SoloRunState, controller: SoloRunController) -> list[tuple[SourceId, RuneType]]:
    sources = [SourceId(forge.id) for forge in state.runeforges] + [CENTER_SOURCE_ID]
    return [
        (source_id, rune_type)
        for source_id in sources
        for rune_type in RUNE_TYPES
        if validate_draft(state, source_id, rune_type, controller.config.player_id).valid
    ]


def _legal_lines(state: SoloRunState) -> list[int]:
    return [
        index
        for index in range(len(state.pattern_lines))
        if validate_pattern_line_placement(
            index, state.selected_runes, state.pattern_lines, state.spell_wall
        ).valid
    ]


def take_random_action(
    state: SoloRunState, controller: SoloRunController, rng: random.Random
) -> tuple[SoloRunState, list[GameEvent]]:
    """Draft anything legal, then place on a random legal line (or the floor)."""
    if state.selected_runes:
        lines = _legal_lines(state)
        if lines:
            return controller.place_runes(state, rng.choice(lines))
        return controller.place_runes_in_floor(state)

    drafts = _legal_drafts(state, controller)
    if not drafts:
        return controller.end_round(state)
    source_id, rune_type = rng.choice(drafts)
    return controller.draft(state, source_id, rune_type)


def take_greedy_action(
    state: SoloRunState, controller: SoloRunController, rng: random.Random
) -> tuple[SoloRunState, list[GameEvent]]:
    """
    Prefer drafts that fit a pattern line without overflow, then place on
    the best line. Falls back to the line with the least overflow.
    """
    if state.selected_runes:
        best = find_best_pattern_line(state.selected_runes, state.pattern_lines, state.spell_wall)
        if best is not None:
            return controller.place_runes(state, best)
        lines = _legal_lines(state)
        if lines:
            count = len(state.selected_runes)
            index = min(lines, key=lambda i: (max(0, count - state.pattern_lines[i].free_space), i))
            return controller.place_runes(state, index)
        return controller.place_runes_in_floor(state)

    drafts = _legal_drafts(state, controller)
    if not drafts:
        return controller.end_round(state)

    def score(draft: tuple[SourceId, RuneType]) -> int:
        source_id, rune_type = draft
        preview, selected, _ = draft_from_source(state, source_id, rune_type)
        line = find_best_pattern_line(selected, preview.pattern_lines, preview.spell_wall)
        return len(selected) if line is not None else -len(selected)

    scores = {d: score(d) for d in drafts}
    best_score = max(scores.values())
    candidates = [d for d in drafts if scores[d] == best_score]
    source_id, rune_type = rng.choice(candidates)
    return controller.draft(state, source_id, rune_type)


ACTIONS = {
    AI_RANDOM: take_random_action,
    AI_GREEDY: take_greedy_action,
}


# =============================================================================
# Running
# =============================================================================


def run_single_run(
    controller: SoloRunController,
    rng: random.Random,
    ai_type: str = AI_GREEDY,
    artefacts: frozenset[ArtefactId] = frozenset(),
    max_games: int = 50,
) -> tuple[SoloRunState, list[GameEvent]]:
    """Play one run to defeat (or `max_games` victories). Returns the final state and all events."""
    take_action = ACTIONS[ai_type]
    state, events = controller.start_run(active_artefacts=artefacts)
    log: list[GameEvent] = list(events)

    for _ in range(MAX_ACTIONS_PER_RUN):
        if state.status == RunStatus.DEFEAT:
            break
        if state.status == RunStatus.VICTORY:
            if state.game_index + 1 >= max_games:
                break
            while state.deck_draft is not None:
                state, events = controller.pick_deck_draft(state, rng.randrange(len(state.deck_draft.offers)))
                log.extend(events)
            state, events = controller.start_next_game(state)
        else:
            state, events = take_action(state, controller, rng)
        log.extend(events)
    else:
        logger.warning(f"Run stopped after {MAX_ACTIONS_PER_RUN} actions in game {state.game_index}")

    return state, log


def update_stats_from_run(stats: RunStats, final_state: SoloRunState, events: list[GameEvent]) -> None:
    games_won = final_state.game_index + (1 if final_state.status == RunStatus.VICTORY else 0)
    stats.total_runs += 1
    stats.total_games_won += games_won
    stats.best_run = max(stats.best_run, games_won)
    stats.total_games_played += final_state.game_index + 1
    stats.total_score += final_state.rune_score.current

    for event in events:
        match event:
            case OverloadEvent(applied_damage=damage):
                stats.total_overload_damage += damage
            case SegmentResolvedEvent(segment=segment):
                stats.total_segments += 1
                stats.total_segment_size += segment.segment_size
            case DefeatEvent(reason=reason):
                stats.defeat_reasons[reason] += 1


def merge_stats(stats_list: list[RunStats]) -> RunStats:
    """Merge multiple RunStats objects into one."""
    merged = RunStats()
    for stats in stats_list:
        merged.total_runs += stats.total_runs
        merged.total_games_won += stats.total_games_won
        merged.best_run = max(merged.best_run, stats.best_run)
        merged.total_score += stats.total_score
        merged.total_games_played += stats.total_games_played
        merged.total_overload_damage += stats.total_overload_damage
        merged.total_segments += stats.total_segments
        merged.total_segment_size += stats.total_segment_size
        merged.defeat_reasons.update(stats.defeat_reasons)
    return merged


def run_batch(
    args: tuple[int, int, int | None, str, frozenset[ArtefactId], SoloRunConfig, int]
) -> RunStats:
    """
    Run a batch of runs (for parallel execution).

    Args:
        args: Tuple of (batch_id, num_runs, base_seed, ai_type, artefacts, config, max_games)
    """
    batch_id, num_runs, base_seed, ai_type, artefacts, config, max_games = args
    rng = random.Random(base_seed + batch_id if base_seed is not None else None)
    controller = SoloRunController(config, rng)
    stats = RunStats()

    for _ in range(num_runs):
        final_state, events = run_single_run(controller, rng, ai_type, artefacts, max_games)
        update_stats_from_run(stats, final_state, events)

    return stats


def run_simulation(
    num_runs: int = 1000,
    seed: int | None = None,
    num_workers: int = 1,
    ai_type: str = AI_GREEDY,
    artefacts: frozenset[ArtefactId] = frozenset(),
    config: SoloRunConfig = DEFAULT_CONFIG,
    max_games: int = 50,
    verbose: bool = True,
) -> RunStats:
    """Run `num_runs` runs, optionally split across worker processes."""
    if verbose:
        print(f"Running {num_runs} simulated runs...")
        print(f"AI type: {ai_type}")
        print(f"Artefacts: {', '.join(sorted(a.value for a in artefacts)) or 'none'}")
        print(f"Workers: {num_workers}")
        print()

    if num_workers <= 1:
        return run_batch((0, num_runs, seed, ai_type, artefacts, config, max_games))

    runs_per_worker = num_runs // num_workers
    remainder = num_runs % num_workers
    batch_args = [
        (i, runs_per_worker + (1 if i < remainder else 0), seed, ai_type, artefacts, config, max_games)
        for i in range(num_workers)
    ]

    with mp.Pool(processes=num_workers) as pool:
        results = pool.map(run_batch, batch_args)

    return merge_stats(results)


def print_statistics(stats: RunStats) -> None:
    """Print formatted statistics."""
    print("=" * 60)
    print("RUN STATISTICS")
    print("=" * 60)
    print(f"Runs:                   {stats.total_runs}")
    print(f"Average games won:      {stats.average_games_won:.2f}")
    print(f"Best run (games won):   {stats.best_run}")
    print(f"Average score per game: {stats.average_score:.1f}")
    print(f"Average overload taken: {stats.average_overload_damage:.1f}")
    print(f"Average segment size:   {stats.average_segment_size:.2f}")
    print()
    print("Defeat reasons:")
    for reason, count in stats.defeat_reasons.most_common():
        print(f"  {reason:<24} {count}")


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Run headless solo runs for balancing")
    parser.add_argument(
        "-n", "--num-runs",
        type=int,
        default=1000,
        help="Number of runs to simulate (default: 1000)"
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility"
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=1,
        help="Number of parallel workers (default: 1)"
    )
    parser.add_argument(
        "--ai",
        type=str,
        choices=AI_TYPES,
        default=AI_GREEDY,
        help=f"AI type to use: {', '.join(AI_TYPES)} (default: {AI_GREEDY})"
    )
    parser.add_argument(
        "--artefact",
        action="append",
        choices=[a.value for a in ArtefactId],
        default=[],
        help="Activate an artefact (repeatable)"
    )
    parser.add_argument(
        "--max-games",
        type=int,
        default=50,
        help="Stop a run after this many victories (default: 50)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON run configuration file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress output"
    )

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = load_config(args.config) if args.config else DEFAULT_CONFIG
    stats = run_simulation(
        num_runs=args.num_runs,
        seed=args.seed,
        num_workers=args.workers,
        ai_type=args.ai,
        artefacts=frozenset(ArtefactId(a) for a in args.artefact),
        config=config,
        max_games=args.max_games,
        verbose=not args.quiet,
    )

    print_statistics(stats)


if __name__ == "__main__":
    main()
