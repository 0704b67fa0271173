from flask import Flask, request, make_response
from html import escape
import logging

from sealedproxy import (
    DocumentParseError,
    FetchError,
    InvalidTargetError,
    ProxyHandler,
    ProxySettings,
    SignatureError,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)

settings = ProxySettings.from_env()
proxy = ProxyHandler.from_settings(settings)

SKIPPED_HEADER = 'X-Sealedproxy-Skipped'

ERROR_STATUS = {
    InvalidTargetError: 400,
    SignatureError: 403,
    FetchError: 502,
    DocumentParseError: 502,
}


def error_page(title, e, status):
    body = f'''
    <!DOCTYPE html>
    <html>
    <head><title>Proxy Error</title></head>
    <body style="font-family: Arial, sans-serif; padding: 20px;">
        <h2>{escape(title)}</h2>
        <p>{escape(str(e))}</p>
        <a href="/">Back to homepage</a>
    </body>
    </html>
    '''
    response = make_response(body, status)
    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    return response


@app.errorhandler(InvalidTargetError)
@app.errorhandler(SignatureError)
@app.errorhandler(FetchError)
@app.errorhandler(DocumentParseError)
def proxy_error(e):
    status = ERROR_STATUS[type(e)]
    if status >= 500:
        logger.error("proxy request failed: %s", e)
    else:
        logger.warning("rejected proxy request: %s", e)
    title = 'Error accessing website' if status >= 500 else 'Request rejected'
    return error_page(title, e, status)


@app.route('/')
def home():
    return '''
    <!DOCTYPE html>
    <html>
    <head>
        <title>Sealed Proxy</title>
        <style>
            body { font-family: Arial, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
            .container { max-width: 1000px; margin: 0 auto; background: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
            h1 { color: #333; text-align: center; }
            code { background: #f1f1f1; padding: 2px 4px; border-radius: 4px; }
        </style>
    </head>
    <body>
        <div class="container">
            <h1>Sealed Proxy</h1>
            <p>Pages are served at <code>/proxy?key=&lt;token&gt;&amp;url=&lt;url&gt;</code>,
               images and stylesheet resources at <code>/image/,s&lt;token&gt;/&lt;url&gt;</code>.</p>
            <p>Links are only followed when their token matches the URL.</p>
        </div>
    </body>
    </html>
    '''


@app.route('/proxy')
def proxy_page():
    url = request.args.get('url', '')
    result = proxy.handle_signed(url, request.args.get('key', ''))

    if result.is_empty:
        response = make_response('<!DOCTYPE html><html><head><title>Sealed Proxy</title></head><body></body></html>')
    else:
        response = make_response(result.html)
        logger.info("proxied %s (%d rewritten, %d skipped)", result.base_url,
                    result.report.rewritten, result.report.skipped_count)

    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    response.headers[SKIPPED_HEADER] = str(result.report.skipped_count)
    return response


# the path embeds a full URL, "https://" included
@app.route('/image/,s<token>/<path:target>', merge_slashes=False)
def proxy_image(token, target):
    # the query string belongs to the proxied URL
    if request.query_string:
        target += '?' + request.query_string.decode()

    resource = proxy.relay(target, token)

    response = make_response(resource.content)
    response.headers['Content-Type'] = resource.content_type or 'application/octet-stream'
    response.headers['Cache-Control'] = 'no-store'
    # anything relayed here is served from our origin; never let it run as a page
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Content-Security-Policy'] = 'sandbox'
    return response


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(host=settings.host, port=settings.port)
