'''GENETIC BARCODE SET SEARCH
   Evolves sets of maximally distant barcodes, either selected from a
   candidate pool or constructed directly from a pattern'''

import logging
import random
import signal
from dataclasses import dataclass, field
from multiprocessing import Pool
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .config import BASES, BarcodeConstraints, SearchConfig
from .distance import get_metric, min_pairwise_distance
from .errors import CancellationSignal, ConfigurationError
from .pool import CandidatePoolBuilder, normalize_candidates
from .progress import CancellationToken, Progress, ProgressCallback
from .results import BarcodeSet, ResultCollection, color_balance, imbalance

# Mutation retries before a construction-mode child is left unchanged
MUTATION_ATTEMPTS = 100

Genome = Tuple[Any, ...]


@dataclass
class SearchContext:
    """Read-only problem description shared with every worker"""
    mode: str
    set_size: int
    metric: str
    balance_colors: bool = False
    candidates: Tuple[str, ...] = ()
    constraints: Optional[BarcodeConstraints] = None
    initialization: str = 'forward'
    max_attempts_per_candidate: int = 1000
    use_code_seeding: bool = False

    def barcodes(self, genome: Genome) -> List[str]:
        if self.mode == 'select':
            return [self.candidates[i] for i in genome]
        return list(genome)


@dataclass
class Individual:
    """One candidate barcode set and its fitness"""
    genome: Genome
    min_distance: int
    imbalance: float
    serial: int

    @property
    def fitness(self) -> Tuple[int, float]:
        return self.min_distance, -self.imbalance

    def sort_key(self) -> Tuple[int, float, int]:
        # best first; earlier-discovered individuals win ties
        return -self.min_distance, self.imbalance, self.serial


@dataclass
class InitTask:
    first: int
    count: int
    seed: int


@dataclass
class RecombinationTask:
    parents: Tuple[Genome, ...]
    count: int
    seed: int


@dataclass
class MutationTask:
    genomes: List[Genome]
    seed: int


@dataclass
class RunOutcome:
    """Best individual of one run and how the run ended"""
    run: int
    best: Individual
    generations: int
    cancelled: bool = False
    early_stopped: bool = False
    history: List[Tuple[int, float]] = field(default_factory=list)

    def to_barcode_set(self, context: SearchContext) -> BarcodeSet:
        barcodes = context.barcodes(self.best.genome)
        return BarcodeSet(barcodes=barcodes,
                          min_distance=self.best.min_distance,
                          metric=context.metric,
                          color_balance=color_balance(barcodes),
                          run=self.run,
                          generations=self.generations,
                          cancelled=self.cancelled)


def partition(total: int, streams: int) -> List[Tuple[int, int]]:
    """Split range(total) into at most `streams` contiguous, non-empty ranges"""
    streams = max(1, min(streams, total))
    size, extra = divmod(total, streams)
    ranges = []
    start = 0
    for i in range(streams):
        stop = start + size + (1 if i < extra else 0)
        if stop > start:
            ranges.append((start, stop))
        start = stop
    return ranges


def _forward_genome(context: SearchContext, start: int) -> Genome:
    """Greedy forward selection: repeatedly add the candidate farthest from the set"""
    metric = get_metric(context.metric)
    candidates = context.candidates
    first = candidates[start]
    nearest = [metric.distance(c, first) for c in candidates]
    nearest[start] = -1
    chosen = [start]
    while len(chosen) < context.set_size:
        # max() keeps the lowest index among equally distant candidates
        best = max(range(len(candidates)), key=nearest.__getitem__)
        chosen.append(best)
        nearest[best] = -1
        for j, c in enumerate(candidates):
            if nearest[j] > 0:
                nearest[j] = min(nearest[j], metric.distance(c, candidates[best]))
    return tuple(sorted(chosen))


def initialize(context: SearchContext, task: InitTask) -> List[Genome]:
    """Create the genomes of individuals first .. first + count - 1"""
    rng = random.Random(task.seed)
    genomes = []
    if context.mode == 'select':
        n = len(context.candidates)
        for i in range(task.first, task.first + task.count):
            if context.initialization == 'forward':
                genomes.append(_forward_genome(context, i % n))
            else:
                genomes.append(tuple(sorted(rng.sample(range(n), context.set_size))))
    else:
        builder = CandidatePoolBuilder(context.constraints, rng)
        for _ in range(task.count):
            barcodes = builder.build(context.set_size, context.max_attempts_per_candidate,
                                     context.use_code_seeding)
            genomes.append(tuple(sorted(barcodes)))
    return genomes


def _tournament(rng: random.Random, size: int) -> int:
    """Rank of a parent drawn from a best-first population, biased to the top"""
    return min(rng.randrange(size), rng.randrange(size))


def recombine(context: SearchContext, task: RecombinationTask) -> List[Genome]:
    """Union-then-trim crossover of tournament-selected parent pairs"""
    rng = random.Random(task.seed)
    parents = task.parents
    children = []
    for _ in range(task.count):
        p1 = parents[_tournament(rng, len(parents))]
        p2 = parents[_tournament(rng, len(parents))]
        union = list(dict.fromkeys(p1 + p2))
        children.append(tuple(sorted(rng.sample(union, context.set_size))))
    return children


def _mutate_selection(context: SearchContext, genome: Genome, rng: random.Random) -> Genome:
    n = len(context.candidates)
    if n <= len(genome):
        return genome
    members = set(genome)
    replacement = rng.randrange(n)
    while replacement in members:
        replacement = rng.randrange(n)
    chosen = list(genome)
    chosen[rng.randrange(len(chosen))] = replacement
    return tuple(sorted(chosen))


def _mutate_construction(context: SearchContext, genome: Genome, rng: random.Random) -> Genome:
    constraints = context.constraints
    free = constraints.free_positions
    members = set(genome)
    barcodes = list(genome)
    for _ in range(MUTATION_ATTEMPTS):
        i = rng.randrange(len(barcodes))
        pos = rng.choice(free)
        old = barcodes[i]
        base = rng.choice([b for b in BASES if b != old[pos]])
        new = old[:pos] + base + old[pos + 1:]
        if new not in members and constraints.gc_ok(new):
            barcodes[i] = new
            return tuple(sorted(barcodes))
    return genome


def mutate(context: SearchContext, task: MutationTask) -> List[Genome]:
    """Swap one barcode of every child for another valid one"""
    rng = random.Random(task.seed)
    if context.mode == 'select':
        return [_mutate_selection(context, g, rng) for g in task.genomes]
    return [_mutate_construction(context, g, rng) for g in task.genomes]


def evaluate(context: SearchContext, genomes: List[Genome]) -> List[Tuple[int, float]]:
    """Minimum pairwise distance (and color imbalance if requested) of each genome"""
    metric = get_metric(context.metric)
    scores = []
    for genome in genomes:
        barcodes = context.barcodes(genome)
        distance = min_pairwise_distance(barcodes, metric)
        penalty = imbalance(color_balance(barcodes)) if context.balance_colors else 0.0
        scores.append((distance, penalty))
    return scores


PHASES: Dict[str, Callable] = {
    'initialize': initialize,
    'recombine': recombine,
    'mutate': mutate,
    'evaluate': evaluate,
}

_worker_context: Optional[SearchContext] = None


def _init_worker(context: SearchContext) -> None:
    global _worker_context
    # interrupts are handled by the driving process
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    _worker_context = context


def _run_phase(args: Tuple[str, Any]) -> Any:
    phase, task = args
    return PHASES[phase](_worker_context, task)


class StreamExecutor:
    """Runs one phase over disjoint tasks and waits for all of them.

    With a single stream the tasks run inline; otherwise they are spread over
    a process pool whose workers receive the search context once at startup.
    """

    def __init__(self, context: SearchContext, streams: int):
        self.context = context
        self.streams = streams
        self._pool = None

    def __enter__(self):
        if self.streams > 1:
            logging.info(f"Using {self.streams} parallel streams for recombination, mutation and evaluation")
            self._pool = Pool(processes=self.streams, initializer=_init_worker,
                              initargs=(self.context,))
        return self

    def __exit__(self, *exc):
        if self._pool is not None:
            self._pool.terminate()
            self._pool.join()
            self._pool = None

    def map(self, phase: str, tasks: Sequence[Any]) -> List[Any]:
        if self._pool is None:
            return [PHASES[phase](self.context, task) for task in tasks]
        return self._pool.map(_run_phase, [(phase, task) for task in tasks])


class GeneticSearchEngine:
    """Population-based search for barcode sets with maximal minimum distance"""

    def __init__(self,
                 config: SearchConfig,
                 candidates: Optional[Sequence[str]] = None,
                 constraints: Optional[BarcodeConstraints] = None,
                 progress: Union[Progress, ProgressCallback, None] = None):
        self.config = config
        self.progress = progress if isinstance(progress, Progress) else Progress(progress)
        self.rng = random.Random(config.seed)

        if config.mode == 'select':
            if candidates is None:
                raise ConfigurationError("Selection mode requires a candidate pool")
            candidates = normalize_candidates(candidates)
            if len(candidates) < config.set_size:
                raise ConfigurationError(
                    f"Candidate pool has {len(candidates)} barcodes, "
                    f"fewer than the set size {config.set_size}")
            self.label = 'Barcode selection'
        else:
            if constraints is None:
                raise ConfigurationError("Construction mode requires barcode constraints")
            available = constraints.count_valid()
            if available < config.set_size:
                raise ConfigurationError(
                    f"Only {available} barcodes satisfy pattern {constraints.pattern} "
                    f"and the GC window, fewer than the set size {config.set_size}")
            self.label = 'Barcode set optimization'

        self.context = SearchContext(mode=config.mode,
                                     set_size=config.set_size,
                                     metric=config.metric,
                                     balance_colors=config.balance_colors,
                                     candidates=tuple(candidates or ()),
                                     constraints=constraints,
                                     initialization=config.initialization,
                                     max_attempts_per_candidate=config.max_attempts_per_candidate,
                                     use_code_seeding=config.use_code_seeding)
        self.outcomes: List[RunOutcome] = []
        self._serial = 0

    def _report(self, percentage: float, message: str) -> bool:
        return self.progress.report(percentage, f"{self.label}: {message}")

    def _individuals(self, genomes: List[Genome], scores: List[Tuple[int, float]]) -> List[Individual]:
        individuals = []
        for genome, (distance, penalty) in zip(genomes, scores):
            individuals.append(Individual(genome, distance, penalty, self._serial))
            self._serial += 1
        return individuals

    def _evaluate(self, executor: StreamExecutor, chunks: List[List[Genome]]) -> List[Individual]:
        score_chunks = executor.map('evaluate', chunks)
        individuals = []
        for genomes, scores in zip(chunks, score_chunks):
            individuals.extend(self._individuals(genomes, scores))
        return individuals

    def _initialize(self, executor: StreamExecutor, rng: random.Random) -> List[Individual]:
        tasks = [InitTask(start, stop - start, rng.getrandbits(64))
                 for start, stop in partition(self.config.population_size, executor.streams)]
        chunks = executor.map('initialize', tasks)
        population = self._evaluate(executor, chunks)
        population.sort(key=Individual.sort_key)
        return population

    def _breed(self, executor: StreamExecutor, population: List[Individual],
               rng: random.Random) -> Optional[List[Individual]]:
        """Recombine, mutate and evaluate one generation of offspring.

        Returns None when cancellation was requested between phases."""
        parents = tuple(ind.genome for ind in population)
        ranges = partition(self.config.offspring_size, executor.streams)

        chunks = executor.map('recombine', [RecombinationTask(parents, stop - start, rng.getrandbits(64))
                                            for start, stop in ranges])
        if self.progress.cancelled:
            return None
        chunks = executor.map('mutate', [MutationTask(chunk, rng.getrandbits(64)) for chunk in chunks])
        if self.progress.cancelled:
            return None
        return self._evaluate(executor, chunks)

    def _replace(self, population: List[Individual], offspring: List[Individual]) -> List[Individual]:
        merged = population + offspring
        merged.sort(key=Individual.sort_key)
        return merged[:self.config.population_size]

    def _target_reached(self, outcome: RunOutcome, prefix: str, stop_distance: float) -> bool:
        if outcome.best.min_distance < stop_distance:
            return False
        logging.info(f"{prefix}: reached distance {outcome.best.min_distance} "
                     f"after {outcome.generations} generations, stopping early")
        return True

    def run_once(self, executor: StreamExecutor, run: int) -> RunOutcome:
        """Evolve one fresh population and return its best individual"""
        config = self.config
        rng = random.Random(self.rng.getrandbits(64))
        prefix = f"Run {run}/{config.num_runs}"

        self._report(0, f"{prefix}: initializing...")
        population = self._initialize(executor, rng)
        outcome = RunOutcome(run=run, best=population[0], generations=0,
                             history=[population[0].fitness])
        stop_distance = config.stop_distance()
        outcome.early_stopped = self._target_reached(outcome, prefix, stop_distance)

        while not outcome.early_stopped and outcome.generations < config.num_generations:
            if self.progress.cancelled:
                outcome.cancelled = True
                break

            offspring = self._breed(executor, population, rng)
            if offspring is None:
                outcome.cancelled = True
                break
            population = self._replace(population, offspring)
            outcome.generations += 1
            outcome.best = population[0]
            outcome.history.append(population[0].fitness)

            if not self._report(outcome.generations / config.num_generations * 100,
                                f"{prefix}, generation {outcome.generations}/{config.num_generations}, "
                                f"minimum distance {population[0].min_distance}"):
                outcome.cancelled = True
                break
            outcome.early_stopped = self._target_reached(outcome, prefix, stop_distance)

        logging.info(f"{prefix} finished after {outcome.generations} generations "
                     f"with minimum distance {outcome.best.min_distance}"
                     f"{' (cancelled)' if outcome.cancelled else ''}")
        return outcome

    def run(self) -> ResultCollection:
        """Execute all runs sequentially and collect their best sets"""
        results = ResultCollection()
        with StreamExecutor(self.context, self.config.num_parallel_streams) as executor:
            for run in range(1, self.config.num_runs + 1):
                if self.progress.cancelled:
                    logging.info(f"Skipping remaining {self.config.num_runs - run + 1} runs after cancellation")
                    break
                outcome = self.run_once(executor, run)
                self.outcomes.append(outcome)
                results.add(outcome.to_barcode_set(self.context))
        return results


def search(config: SearchConfig,
           candidates: Optional[Sequence[str]] = None,
           constraints: Optional[BarcodeConstraints] = None,
           progress: Optional[ProgressCallback] = None,
           token: Optional[CancellationToken] = None) -> ResultCollection:
    """Run a complete barcode set search.

    Select mode picks sets from `candidates`, or from a pool of
    `config.pool_size` barcodes generated from `constraints` when no
    candidates are given. Construct mode builds sets from `constraints`.
    Cancellation via the progress callback (or `token`) ends the search
    early and returns the sets found so far.
    """
    tracker = Progress(progress, token)

    if config.mode == 'select' and candidates is None:
        if constraints is None:
            raise ConfigurationError("Selection mode requires candidates or barcode constraints")
        tracker.report(0, "Generating barcodes...")
        builder = CandidatePoolBuilder(constraints, random.Random(config.seed),
                                       tracker.prefixed("Barcode generation: "))
        try:
            candidates = builder.build(config.pool_size, config.max_attempts_per_candidate,
                                       config.use_code_seeding)
        except CancellationSignal:
            logging.info("Barcode generation cancelled, no sets selected")
            return ResultCollection()

    engine = GeneticSearchEngine(config, candidates=candidates, constraints=constraints,
                                 progress=tracker)
    results = engine.run()
    tracker.report(100, "Barcode search finished!")
    return results
