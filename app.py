"""
Pixel Colour Demo – Python/Flask front end for the Pixel API.

Endpoints:
  GET /                              – Index page with the example list.
  GET /ImagickPixel/<example>        – Example page: description and result.
  GET /image/ImagickPixel/<example>  – PNG swatch rendered by the example.
  GET /health                        – Liveness check.
"""

import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from markupsafe import escape

from pixel_examples import EXAMPLES, SWATCH_SIZE
from pixel_nav import PixelNav
from provider import Provider
from tier import (
    InjectionParams,
    Output,
    Response,
    add_injection_params,
    init_app,
    send_error_response,
    send_response,
    throw_wrong_type_exception,
)

app = Flask(__name__)
CORS(app)

app.config["SWATCH_SIZE"] = SWATCH_SIZE
app.config.from_prefixed_env()

# Uncaught errors reach TierMiddleware, which renders the 500 page
init_app(app)

HTML_TYPE = "text/html; charset=utf-8"


def _provider(output: Output) -> Provider:
    provider = Provider(EXAMPLES)
    add_injection_params(provider, InjectionParams(
        shares=[output],
        params={"swatch_size": app.config["SWATCH_SIZE"]},
    ))
    return provider


def _emit(response: Response, output: Output):
    send_response(request.environ, response, output)
    return output.to_response()


def _not_found():
    output = Output()
    send_error_response(request.environ, "not found", 404, output)
    return output.to_response()


def _page(nav: PixelNav, content: str) -> Response:
    title = escape(nav.render_title())
    body = (
        f"<html><head><title>{title}</title></head><body>"
        f"<div class='sidebar'>{nav.render_nav()}</div>"
        f"<div class='main'><h1>{title}</h1>{content}"
        f"<div class='pager'>{nav.render_previous_button()} {nav.render_next_button()}</div>"
        f"</div></body></html>"
    )
    response = Response(body=body)
    response.add_header("Content-Type", HTML_TYPE)
    return response


@app.route("/", methods=["GET"])
@app.route("/ImagickPixel", methods=["GET"])
def index():
    output = Output()
    provider = _provider(output)
    PixelNav().display_index(provider)

    nav = provider.make("ActiveNav")
    content = "<p>Colour manipulation with the Pixel API. Pick an example.</p>"
    return _emit(_page(nav, content), output)


@app.route("/ImagickPixel/<example>", methods=["GET"])
def example_page(example):
    if example not in PixelNav.examples:
        return _not_found()

    output = Output()
    provider = _provider(output)
    PixelNav().display(example, provider)

    nav = provider.make("ActiveNav")
    demo = provider.make("Example")
    content = (
        f"<p>{escape(demo.description)}</p>"
        f"<pre>{escape(demo.render())}</pre>"
        f"<img src='/image/ImagickPixel/{escape(example)}' alt='{escape(example)}'/>"
    )
    return _emit(_page(nav, content), output)


@app.route("/image/ImagickPixel/<example>", methods=["GET"])
def example_image(example):
    if example not in PixelNav.examples:
        return _not_found()

    output = Output()
    provider = _provider(output)
    result = PixelNav().render_image(example, provider)
    if not isinstance(result, Response):
        throw_wrong_type_exception(result)

    app.logger.debug("Rendering swatch for %s", example)
    return _emit(result, output)


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(debug=False, host="0.0.0.0", port=5000, threaded=False)
