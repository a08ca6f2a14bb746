from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Union
import math

from .models import TagWeight

# Blend of learned interest vs. HN popularity
TAG_BLEND = 0.7
POPULARITY_BLEND = 0.3

# Tags the user has never liked contribute nothing. Novel content then ranks
# on popularity alone until a like gives its tags a weight.
DEFAULT_TAG_WEIGHT = 0.0

WeightMap = Mapping[str, Union[float, TagWeight]]

@dataclass(frozen=True)
class RankedArticle:
    article: Any
    tag_score: float
    popularity_score: float
    score: float

    @property
    def id(self):
        return self.article.id

def popularity_score(points: int) -> float:
    # +1 keeps log10 defined at zero points
    return math.log10(max(0, points) + 1)

def _weight_of(value: Union[float, TagWeight]) -> float:
    return float(value.weight) if isinstance(value, TagWeight) else float(value)

def tag_score(tags: Iterable[str], weights: WeightMap) -> float:
    total = 0.0
    for tag in dict.fromkeys(tags or ()):
        value = weights.get(tag)
        total += DEFAULT_TAG_WEIGHT if value is None else _weight_of(value)
    return total

def score_article(article, weights: WeightMap) -> RankedArticle:
    t = tag_score(article.tags, weights)
    p = popularity_score(article.score or 0)
    return RankedArticle(article=article, tag_score=t, popularity_score=p,
                         score=TAG_BLEND * t + POPULARITY_BLEND * p)

def rank(articles: Iterable[Any], weights: WeightMap) -> List[RankedArticle]:
    """
    Score and sort articles, best first.

    Articles need ``id``, ``tags`` and ``score`` (HN points). ``weights`` maps
    tag -> weight (plain floats or TagWeight rows). Equal scores keep their
    input order, so the feed's own ordering is the tie-breaker.
    """
    scored = [(i, score_article(a, weights)) for i, a in enumerate(articles)]
    scored.sort(key=lambda pair: (-pair[1].score, pair[0]))
    return [r for _, r in scored]
