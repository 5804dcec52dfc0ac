import json
from functools import lru_cache

import azure.functions as func

from storycomposer.media.brightness import shadow_color
from storycomposer.media.composer import StoryComposer
from storycomposer.media.text_overlay import CaptionStyle, render_caption_svg
from storycomposer.shared.config import CompositionConfig
from storycomposer.shared.logging_utils import info as log_info, error as log_error
from storycomposer.specs.common.errors import (
    AssetNotFoundError,
    ConfigurationError,
    PathOutsideRootError,
    UnsupportedFormatError,
)
from storycomposer.specs.functions.compose_story_spec import CaptionSvgRequest, CompositionRequest

bp = func.Blueprint()


@lru_cache(maxsize=1)
def get_composer() -> StoryComposer:
    return StoryComposer(CompositionConfig.from_env())


def _json_error(status_code: int, payload: dict) -> func.HttpResponse:
    return func.HttpResponse(body=json.dumps(payload), mimetype="application/json", status_code=status_code)


def _confine_paths(request: CompositionRequest, config: CompositionConfig) -> CompositionRequest:
    return request.model_copy(update={
        field: config.confine(field, getattr(request, field))
        for field in ("background_path", "asset_path", "output_path")
    })


@bp.function_name(name="compose_story")
@bp.route(route="compose_story", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def compose_story_handler(req: func.HttpRequest) -> func.HttpResponse:
    try:
        request = CompositionRequest.model_validate(req.get_json())
    except ValueError as exc:
        # Bad JSON and pydantic validation both surface as ValueError
        log_error(None, "compose:bad_request", error=str(exc))
        return _json_error(400, {"code": "INVALID_REQUEST", "message": str(exc), "details": {}})

    composer = get_composer()
    try:
        request = _confine_paths(request, composer.config)
    except PathOutsideRootError as exc:
        log_error(None, "compose:path_rejected", field=exc.field, path=exc.path)
        return _json_error(400, exc.to_dict())
    except ConfigurationError as exc:
        log_error(None, "compose:misconfigured", error=str(exc))
        return _json_error(500, exc.to_dict())

    log_info(None, "compose:request", output=str(request.output_path), includeCaption=request.include_caption)
    try:
        result = composer.compose(request)
    except AssetNotFoundError as exc:
        return _json_error(404, exc.to_dict())
    except UnsupportedFormatError as exc:
        return _json_error(415, exc.to_dict())

    return func.HttpResponse(
        body=result.model_dump_json(),
        mimetype="application/json",
        status_code=200 if result.success else 500,
    )


@bp.function_name(name="caption_svg")
@bp.route(route="caption_svg", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def caption_svg_handler(req: func.HttpRequest) -> func.HttpResponse:
    try:
        params = CaptionSvgRequest(
            content=req.params.get("content") or None,
            tier=int(req.params.get("tier") or 2),
            shadow=req.params.get("shadow") or "dark",
        )
    except ValueError as exc:
        log_error(None, "caption_svg:bad_request", error=str(exc))
        return func.HttpResponse("Invalid caption parameters", status_code=400)

    cfg = get_composer().config
    y = cfg.tier_y(params.tier)
    markup = render_caption_svg(
        CaptionStyle(
            text=params.content or cfg.default_caption,
            x=cfg.caption_x,
            y=y,
            font_size=cfg.font_size,
            font_weight=cfg.font_weight,
            color=cfg.text_color,
            shadow_color=shadow_color(params.shadow),
            max_width=cfg.caption_max_width,
            font_family=cfg.font_family,
            font_url=cfg.font_url(),
            glyph_width_factor=cfg.glyph_width_factor,
        )
    )
    log_info(None, "caption_svg:rendered", tier=params.tier, shadow=params.shadow.value, lines=len(markup.lines))
    return func.HttpResponse(
        body=markup.svg,
        mimetype="image/svg+xml",
        status_code=200,
        headers={"X-Caption-Lines": str(len(markup.lines)), "X-Caption-Y": str(y)},
    )
