from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from newsdesk import DeskConfig, NewsDesk, RefreshScheduler
from newsdesk.errors import InvalidTopicError

DEFAULT_PAGE_SIZE = 10


def _positive_int(value: Optional[str], default: int) -> int:
    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def create_app(desk: Optional[NewsDesk] = None) -> Flask:
    app = Flask(__name__)
    if desk is None:
        load_dotenv()
        desk = NewsDesk(DeskConfig.from_env())

    def _invalid_topic():
        return jsonify({"error": "Invalid topic", "topics": desk.topics}), 400

    @app.get("/health")
    def healthcheck():
        return {"status": "ok"}

    @app.get("/topics")
    def list_topics():
        return {"topics": desk.topics}

    @app.get("/news/<topic>")
    def get_news(topic: str):
        page = _positive_int(request.args.get("page"), 1)
        page_size = min(
            _positive_int(request.args.get("pageSize"), DEFAULT_PAGE_SIZE),
            desk.config.max_page_size,
        )
        try:
            records = desk.get_page(topic, page, page_size)
        except InvalidTopicError:
            return _invalid_topic()
        return jsonify([record.to_public_dict() for record in records])

    @app.post("/refresh")
    def refresh_all():
        reports = desk.refresh_all()
        results = [report.to_dict() for report in reports]
        if any(report.status == "failed" for report in reports):
            return jsonify({"error": "Failed to refresh topics.", "results": results}), 500
        return jsonify({"message": "All topics refreshed.", "results": results})

    @app.post("/refresh/<topic>")
    def refresh_topic(topic: str):
        try:
            report = desk.refresh(topic)
        except InvalidTopicError:
            return _invalid_topic()
        except Exception as exc:  # runtime guard
            app.logger.exception("Refresh for %s failed", topic)
            return jsonify({"error": f"Failed to refresh {topic}.", "detail": str(exc)}), 500
        return jsonify({"message": f"{report.topic} refreshed.", "result": report.to_dict()})

    return app


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("NEWSDESK_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    desk = NewsDesk(DeskConfig.from_env())
    app = create_app(desk)
    scheduler = RefreshScheduler(desk, interval_minutes=desk.config.refresh_minutes)
    scheduler.start()
    try:
        app.run(host="0.0.0.0", port=int(os.getenv("PORT", "10000")))
    finally:
        scheduler.stop(wait=False)


if __name__ == "__main__":
    main()
