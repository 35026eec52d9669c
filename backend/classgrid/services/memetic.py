from __future__ import annotations

from collections import defaultdict
import logging
import random
from dataclasses import dataclass
from time import perf_counter

from classgrid.schemas.generator import MemeticSettings
from classgrid.schemas.scheduling import FailedClass, ScheduleEntry, SolverResult
from classgrid.services.constraints import Placement
from classgrid.services.problem import SchedulingProblem, failure
from classgrid.services.tasks import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Gene:
    room_id: str
    day: str
    start_index: int


@dataclass
class EvaluationResult:
    fitness: float
    hard_conflicts: int
    soft_penalty: float


class MemeticScheduler:
    """Genetic search with per-generation hill climbing and a sanitizing decode."""

    def __init__(
        self,
        problem: SchedulingProblem,
        settings: MemeticSettings | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.problem = problem
        self.settings = settings or MemeticSettings()
        self.random = rng if rng is not None else random.Random(self.settings.random_seed)
        self.tasks: list[Task] = list(problem.schedulable)
        self.eval_cache: dict[tuple[Gene, ...], EvaluationResult] = {}
        self.generations_run = 0

    def _random_gene(self, index: int) -> Gene:
        task = self.tasks[index]
        return Gene(
            room_id=self.random.choice(task.candidate_room_ids),
            day=self.random.choice(task.candidate_days),
            start_index=self.random.choice(self.problem.start_options[task.task_id]),
        )

    def _random_individual(self) -> list[Gene]:
        return [self._random_gene(index) for index in range(len(self.tasks))]

    def _placement(self, index: int, gene: Gene) -> Placement:
        return self.problem.placement(self.tasks[index], gene.room_id, gene.day, gene.start_index)

    def _evaluate(self, genes: list[Gene]) -> EvaluationResult:
        key = tuple(genes)
        if key in self.eval_cache:
            return self.eval_cache[key]

        evaluator = self.problem.evaluator
        settings = self.settings
        assignments = [(task, self._placement(index, gene)) for index, (task, gene) in enumerate(zip(self.tasks, genes))]

        # Every pairwise rule needs both sessions on one day.
        by_day: dict[str, list[tuple[Task, Placement]]] = defaultdict(list)
        for task, placement in assignments:
            by_day[placement.day].append((task, placement))

        hard = sum(1 for _, placement in assignments if evaluator.breaks_window(placement))
        for day_assignments in by_day.values():
            for left_index, (task, placement) in enumerate(day_assignments):
                for other, other_placement in day_assignments[left_index + 1 :]:
                    hard += len(evaluator.pair_violations(task, placement, other, other_placement))

        if hard:
            result = EvaluationResult(
                fitness=-(hard * settings.hard_conflict_penalty),
                hard_conflicts=hard,
                soft_penalty=0.0,
            )
            self.eval_cache[key] = result
            return result

        soft_conflicts = sum(
            1 for task, placement in assignments if evaluator.is_soft_type_mismatch(task, placement.room_id)
        )
        bonus = sum(evaluator.room_preference_bonus(task, placement.room_id) for task, placement in assignments)
        compactness = 0.0
        for task, placement in assignments:
            score = evaluator.compactness_score(task, placement, by_day[placement.day])
            if score is not None:
                compactness += score

        soft_penalty = soft_conflicts * settings.soft_conflict_penalty
        result = EvaluationResult(
            fitness=len(self.tasks) * settings.task_base_score - soft_penalty + bonus + compactness,
            hard_conflicts=0,
            soft_penalty=soft_penalty,
        )
        self.eval_cache[key] = result
        return result

    def _crossover(self, parent_a: list[Gene], parent_b: list[Gene]) -> list[Gene]:
        return [gene_a if self.random.random() < 0.5 else gene_b for gene_a, gene_b in zip(parent_a, parent_b)]

    def _mutate_one(self, genes: list[Gene]) -> list[Gene]:
        mutated = list(genes)
        index = self.random.randrange(len(mutated))
        mutated[index] = self._random_gene(index)
        return mutated

    def _local_search(
        self, genes: list[Gene], evaluation: EvaluationResult
    ) -> tuple[list[Gene], EvaluationResult]:
        candidate = self._mutate_one(genes)
        candidate_eval = self._evaluate(candidate)
        if candidate_eval.fitness > evaluation.fitness:
            return candidate, candidate_eval
        return genes, evaluation

    def _rank(self, population: list[list[Gene]]) -> tuple[list[list[Gene]], list[EvaluationResult]]:
        evaluations = [self._evaluate(item) for item in population]
        ranked_indices = sorted(range(len(population)), key=lambda idx: evaluations[idx].fitness, reverse=True)
        return [population[idx] for idx in ranked_indices], [evaluations[idx] for idx in ranked_indices]

    def evolve(self) -> tuple[list[Gene], EvaluationResult]:
        settings = self.settings
        population = [self._random_individual() for _ in range(settings.population_size)]
        ranked_population, ranked_evaluations = self._rank(population)

        for generation in range(settings.generations):
            if ranked_evaluations[0].hard_conflicts == 0:
                logger.info("Memetic search found a conflict-free individual at generation %d", generation)
                break
            self.generations_run = generation + 1

            next_population = [list(item) for item in ranked_population[: settings.elite_count]]
            while len(next_population) < settings.population_size:
                parent_a = ranked_population[self.random.randrange(len(ranked_population))]
                parent_b = ranked_population[self.random.randrange(len(ranked_population))]
                child = self._crossover(parent_a, parent_b)
                if self.random.random() < settings.mutation_rate:
                    child = self._mutate_one(child)
                next_population.append(child)

            ranked_population, ranked_evaluations = self._rank(next_population)
            for index in range(min(settings.local_search_count, len(ranked_population))):
                ranked_population[index], ranked_evaluations[index] = self._local_search(
                    ranked_population[index], ranked_evaluations[index]
                )
            ranked_population, ranked_evaluations = self._rank(ranked_population)

        return ranked_population[0], ranked_evaluations[0]

    def decode(self, genes: list[Gene]) -> tuple[list[ScheduleEntry], list[FailedClass]]:
        """Greedy acceptance against the genes already accepted."""

        evaluator = self.problem.evaluator
        accepted: list[tuple[Task, Placement]] = []
        entries: list[ScheduleEntry] = []
        failed: list[FailedClass] = []
        for index, gene in enumerate(genes):
            task = self.tasks[index]
            placement = self._placement(index, gene)
            conflict = evaluator.hard_conflict(task, placement, accepted)
            if conflict is None:
                accepted.append((task, placement))
                entries.append(self.problem.entry(task, placement))
            else:
                failed.append(failure(task, f"Conflict detected in best solution: {conflict.description}."))
        return entries, failed

    def run(self) -> SolverResult:
        start = perf_counter()
        failed = self.problem.failures()
        if not self.tasks:
            return SolverResult(success=not failed, scheduled_entries=[], failed_classes=failed)

        best_genes, best_eval = self.evolve()
        entries, rejected = self.decode(best_genes)
        failed.extend(rejected)
        logger.info(
            "Memetic search finished in %d ms after %d generations: fitness=%.1f hard=%d placed=%d failed=%d",
            int((perf_counter() - start) * 1000),
            self.generations_run,
            best_eval.fitness,
            best_eval.hard_conflicts,
            len(entries),
            len(failed),
        )
        return SolverResult(success=not failed, scheduled_entries=entries, failed_classes=failed)
