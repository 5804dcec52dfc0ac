import os
import logging
import azure.functions as func

from storycomposer.function_blueprints.compose_story_blueprint import bp as compose_story_bp

app = func.FunctionApp()


def _configure_logging() -> None:
    lvl = (os.getenv("STORYCOMPOSER_LOG_LEVEL") or "").upper()
    level = getattr(logging, lvl, logging.INFO) if lvl else logging.INFO
    logging.getLogger("storycomposer").setLevel(level)
    # Pillow logs every plugin probe at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)


_configure_logging()

app.register_functions(compose_story_bp)
