# hn_digest/workflow.py
from typing import Any, Callable, Dict, List, Optional, Tuple
import threading
import time
import uuid

from .config import RECENT_SENT_DAYS
from .errors import PreferenceUpdateError, SummarizationError
from .logging_setup import get_logger, request_id_var
from .models import Article, utcnow
from .preferences import PreferenceModel
from .protocols import ArticleSummarizer, ContentFeed, MessageSender
from .ranker import rank
from .delivery import render_article
from .settings import SettingsManager
from .store import ArticleRepository
from .text_extraction import fetch_and_extract

logger = get_logger("hn_digest.workflow")

# Fetch twice as many stories as we deliver, so ranking has something to choose from
FETCH_MULTIPLIER = 2


class DigestRunner:
    """
    One digest cycle, end to end:
    - refresh tunables from settings
    - decay tag weights (before ranking, once per cycle)
    - fetch top stories, drop the ones sent recently
    - extract text, summarize + tag
    - rank with current weights, deliver the top N, persist them

    ``run`` is the zero-argument callback handed to DigestScheduler and to
    the manual /digest/run route. Overlapping runs are refused.
    """

    def __init__(
        self,
        feed: ContentFeed,
        summarizer: ArticleSummarizer,
        sender: MessageSender,
        articles: ArticleRepository,
        preferences: PreferenceModel,
        settings: SettingsManager,
        extract: Callable[[str], Tuple[str, Optional[str]]] = fetch_and_extract,
        recent_days: int = RECENT_SENT_DAYS,
    ):
        self.feed = feed
        self.summarizer = summarizer
        self.sender = sender
        self.articles = articles
        self.preferences = preferences
        self.settings = settings
        self.extract = extract
        self.recent_days = recent_days
        self._running = threading.Lock()

    def __call__(self) -> Dict[str, Any]:
        return self.run()

    def run(self) -> Dict[str, Any]:
        if not self._running.acquire(blocking=False):
            logger.warning("RUN_DIGEST_SKIPPED", extra={"reason": "already running"})
            return {"skipped": True, "items": []}
        run_id = uuid.uuid4().hex[:8]
        token = request_id_var.set(f"digest-{run_id}")
        try:
            return self._run(run_id)
        finally:
            request_id_var.reset(token)
            self._running.release()

    def _run(self, run_id: str) -> Dict[str, Any]:
        date = utcnow().strftime("%Y-%m-%d")

        def X(**fields):
            return {"run_id": run_id, "date": date, **fields}

        t0 = time.perf_counter()
        article_count = self.settings.get_int("article_count", 30)
        self.preferences.configure(
            boost=self.settings.get_float("tag_boost_on_like", 0.2),
            decay_rate=self.settings.get_float("tag_decay_rate", 0.02),
            min_weight=self.settings.get_float("min_tag_weight", 0.1),
        )
        logger.info("RUN_DIGEST_START", extra=X(step="start", article_count=article_count))

        try:
            # --- Decay ---
            try:
                decayed = self.preferences.apply_decay()
                logger.info("DECAY_DONE", extra=X(step="decay", tags=decayed))
            except PreferenceUpdateError as e:
                # rank with the weights we still have
                logger.error("DECAY_FAILED", extra=X(step="decay", handled=True, error=str(e)))

            # --- Fetch ---
            t_fetch = time.perf_counter()
            story_ids = self.feed.top_stories(article_count * FETCH_MULTIPLIER)
            recent = set(self._recent_ids(X))
            candidate_ids = [i for i in story_ids if i not in recent]
            logger.info(
                "FETCH_OK",
                extra=X(step="fetch", fetched=len(story_ids), after_filter=len(candidate_ids),
                        elapsed_ms=round((time.perf_counter() - t_fetch) * 1000)),
            )

            # --- Summarize ---
            t_summary = time.perf_counter()
            candidates: List[Article] = []
            item_errors = summary_errors = 0
            for item_id in candidate_ids:
                try:
                    item = self.feed.get_item(item_id)
                except Exception as e:
                    item_errors += 1
                    logger.exception("ITEM_FETCH_FAILED", extra=X(step="fetch_item", handled=True, id=item_id, error=type(e).__name__))
                    continue
                if not item or not item.get("title"):
                    continue

                content = item["title"]
                if item.get("url"):
                    try:
                        text, _ = self.extract(item["url"])
                    except Exception as e:
                        logger.warning("EXTRACT_FAILED", extra=X(step="extract", handled=True, id=item_id, error=type(e).__name__))
                        text = ""
                    if text:
                        content = text

                try:
                    result = self.summarizer.summarize(item["title"], content)
                except SummarizationError as e:
                    summary_errors += 1
                    logger.warning("SUMMARY_FAILED", extra=X(step="summary", handled=True, id=item_id, error=str(e)))
                    continue

                candidates.append(Article(
                    id=item["id"],
                    title=item["title"],
                    url=item.get("url", ""),
                    summary=result.get("summary", ""),
                    tags=list(result.get("tags") or []),
                    score=item.get("score", 0),
                    comments=item.get("comments", 0),
                ))
            logger.info(
                "SUMMARY_OK",
                extra=X(step="summary", count=len(candidates), item_errors=item_errors,
                        summary_errors=summary_errors,
                        elapsed_ms=round((time.perf_counter() - t_summary) * 1000)),
            )

            # --- Rank ---
            weights = self.preferences.weights()
            ranked = rank(candidates, weights)
            top = ranked[:article_count]
            logger.info(
                "RANKING_DONE",
                extra=X(step="rank", candidates=len(ranked), selected=len(top), weights=len(weights),
                        top5_scores=[round(r.score, 4) for r in top[:5]]),
            )

            # --- Deliver & persist ---
            sent: List[Dict[str, Any]] = []
            send_errors = 0
            for r in top:
                article = r.article
                try:
                    message_id = self.sender.send(render_article(article))
                except Exception as e:
                    send_errors += 1
                    logger.exception("SEND_FAILED", extra=X(step="deliver", handled=True, id=article.id, error=type(e).__name__))
                    continue
                try:
                    self.articles.save(article)
                    self.articles.mark_sent(article.id, message_id)
                except Exception as e:
                    logger.exception("PERSIST_ARTICLE_FAILED", extra=X(step="persist", handled=True, id=article.id, error=type(e).__name__))
                sent.append({
                    "id": article.id,
                    "title": article.title,
                    "url": article.url,
                    "tags": list(article.tags),
                    "score": round(r.score, 4),
                    "message_id": message_id,
                })

            logger.info(
                "RUN_DIGEST_SUCCESS",
                extra=X(step="end", handled=True, sent=len(sent), send_errors=send_errors,
                        total_elapsed_ms=round((time.perf_counter() - t0) * 1000)),
            )
            return {"run_id": run_id, "date": date, "skipped": False, "items": sent}

        except Exception as e:
            logger.exception(
                "RUN_DIGEST_FATAL",
                extra=X(step="fatal", handled=False, error=type(e).__name__,
                        total_elapsed_ms=round((time.perf_counter() - t0) * 1000)),
            )
            raise

    def _recent_ids(self, X) -> List[int]:
        try:
            return self.articles.recent_sent_ids(self.recent_days)
        except Exception as e:
            logger.exception("RECENT_IDS_FAILED", extra=X(step="fetch", handled=True, error=type(e).__name__))
            return []
