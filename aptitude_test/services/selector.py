"""
services/selector.py

Question selection for a test session.
Pure functions over the bank and a random source, no global state.

Single mode: shuffle the matching pool and take the first TARGET_QUESTION_COUNT.
Mixed mode:  split the target evenly across the requested topics that have at
             least one match, the first of them absorbing the remainder.
             A topic with fewer questions than its share contributes what it
             has; the shortfall is not filled from other topics, so a mixed
             set can be shorter than the target.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence

from aptitude_test.errors import InsufficientQuestions
from aptitude_test.models.question_model import Question
from aptitude_test.models.selection_model import SelectedSet, SelectionMode, SelectionRequest
from aptitude_test.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)


def select_questions(
    bank: QuestionBank,
    request: SelectionRequest,
    rng: Optional[random.Random] = None,
) -> SelectedSet:
    """
    Pick an ordered, duplicate-free question set for the request.

    Args:
        bank:    question bank to draw from.
        request: mode, topics and difficulty.
        rng:     random source (module-level random when None).

    Returns:
        SelectedSet with the picked questions.

    Raises:
        InsufficientQuestions: fewer matching questions than the target count.
    """
    rng = rng or random.Random()
    target = request.target_count
    pool = bank.filter(request.difficulty, request.topics)

    if len(pool) < target:
        logger.info(
            f"select_questions: {len(pool)}/{target} questions for "
            f"{request.category_label} ({request.difficulty.value})"
        )
        raise InsufficientQuestions(len(pool), target, request.category_label)

    if request.mode is SelectionMode.SINGLE:
        picked = _pick_single(pool, target, rng)
    else:
        picked = _pick_mixed(pool, request.topics, target, rng)

    if len(picked) < target:
        logger.warning(
            f"select_questions: mixed selection short by {target - len(picked)} "
            f"for {request.category_label}"
        )

    return SelectedSet(request=request, questions=tuple(picked))


def allocate_per_topic(topic_sizes: Dict[str, int], topics: Sequence[str], target: int) -> Dict[str, int]:
    """
    Number of questions each requested topic is asked to contribute.

    Topics with no matching questions get no share. The first represented
    topic takes target // n + target % n, every other one target // n.
    """
    represented = [t for t in topics if topic_sizes.get(t, 0) > 0]
    if not represented:
        return {}
    per_topic, remainder = divmod(target, len(represented))
    allocation = {t: per_topic for t in represented}
    allocation[represented[0]] += remainder
    return allocation


def _pick_single(pool: List[Question], target: int, rng: random.Random) -> List[Question]:
    shuffled = list(pool)
    rng.shuffle(shuffled)
    return shuffled[:target]


def _pick_mixed(
    pool: List[Question],
    topics: Sequence[str],
    target: int,
    rng: random.Random,
) -> List[Question]:
    by_topic: Dict[str, List[Question]] = {}
    for q in pool:
        by_topic.setdefault(q.category, []).append(q)

    allocation = allocate_per_topic(
        {t: len(qs) for t, qs in by_topic.items()}, topics, target
    )

    picked: List[Question] = []
    for topic, wanted in allocation.items():
        candidates = by_topic[topic]
        # sample() returns the picks in random order
        picked.extend(rng.sample(candidates, min(wanted, len(candidates))))
    return picked
