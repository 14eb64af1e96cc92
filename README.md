# barry

A small HTML framework built on aiohttp and Jinja2. Each page is a directory
under `routes/` that holds an `index.html` template. It can also hold an
`index.server.py` file that supplies the page's data. barry renders the page
and can cache the result. In development it reloads the browser whenever a
file changes.

## Installation

```
pip install barry
```

## Getting started

```
mkdir mysite && cd mysite
barry init
barry dev
```

`barry init` writes two files into the current directory:

- `main.py` starts the development server.
- `routes/index.server.py` is a data handler for `/`.

Add a `routes/index.html` template yourself. Until one exists, `/` answers
with the 404 page.

`barry dev` serves the project at `http://localhost:8080` and prints every
request with its status and duration.

## Project layout

```
barry.config.yml          # outputDir, cache, debugHeaders
routes/
  index.html              # page for /
  index.server.py         # optional: handle_request(request, params) -> dict
  blog/_slug/index.html   # /blog/<slug>; params["slug"] holds the segment
  _error/404.html         # optional error pages (or _error/index.html)
components/               # shared *.html templates
public/                   # static files served at /static/
```

A directory whose name starts with `_` matches any single path segment. The
segment is passed to the handler under the directory name without the `_`.

### Templates

Pages are Jinja2 templates with autoescaping on. Every `.html` file under
`components/` is available. You can refer to it by its path, such as
`components/card.html`, or by its file name, such as `card.html`.

A page can name a layout in a comment on one of its first 50 lines:

```
<!-- layout: components/layouts/base.html -->
```

That layout can then be used as `{% extends "layout" %}`.

These helpers are available in every template:

- `minify(path)`: only applies in `prod`. For a `/static/...css` or `.js` file
  that is not already `.min`, it strips comments and whitespace from the file in
  `public/`. It writes `<outputDir>/static/<name>.min.<ext>.gz` and returns
  `/static/<name>.min.<ext>?v=<hash>`. In any other case it returns the path
  unchanged.
- `versioned(path)`: appends `?v=<hash>` to a `/static/` URL. The hash comes
  from the file's content, looked up first in `public/` and then in
  `<outputDir>/static/`.
- `props(key, value, ...)`: builds a dict from alternating keys and values.
- `safeHTML(value)`: marks a string as trusted HTML. Any other value becomes
  an empty string.

Error pages receive `Title`, `StatusCode`, `Message`, `Path` and
`Description`. If no error page renders, the response is plain
`404 - Page not found`.

### Server data handlers

An `index.server.py` file defines `handle_request(request, params)`:

- `request` is always `None`.
- `params` is a dict of the route parameters.
- The function returns a JSON-serialisable dict, which becomes the template
  context.

The file runs in a separate Python interpreter. Its own directory is on the
import path.

To answer 404, raise `barry.errors.NotFoundError`. Any other failure produces
a 500 response that starts with `Server logic error:`.

## Configuration

`barry.config.yml`:

```yaml
outputDir: ./cache
cache: true
debugHeaders: false
```

Without a config file, the output directory is `./cache` and both flags are
off. The `dev` and `prod` commands set caching themselves: `dev` turns it off
and `prod` turns it on, whatever `cache` says in the file. With
`debugHeaders: true`, page responses carry `X-Barry-Cache: HIT` or `MISS`.

## Commands

```
barry init          # write the starter files into the current directory
barry dev           # development server on port 8080: no caching, live reload
barry prod          # production server on port 8080: page caching, gzip, ETags
barry clean [route] # delete the output directory, or one route below it
barry check         # parse every route's templates and report failures
barry info          # show configuration and route/component/cached-page counts
```

### Development mode

- Files under `public/` are served at `/static/` with `Cache-Control: no-store`.
- A WebSocket endpoint at `/__barry_reload` drives live reload.
- A small script is inserted before `</body>` of every page.
- Changes under `routes/`, `components/` or `public/` rescan the routes and
  tell connected browsers to reload.

### Production mode

Rendered pages are saved gzip-compressed as
`<outputDir>/<route>/index.html.gz`. They are served from there to clients
that accept gzip, with a weak ETag. A matching `If-None-Match` gets a 304. A
plain `index.html` placed in the same directory is served to other clients.

For a `/static/` request, the server looks in this order:

1. `<outputDir>/static/<file>.gz`, if the client accepts gzip.
2. `<outputDir>/static/<file>`.
3. `public/<file>`.

Static files are sent with `Cache-Control: public, max-age=31536000, immutable`.

## Using it as a library

```python
from barry.server import RuntimeConfig, create_app, start

start(RuntimeConfig(env="prod", enable_cache=True, port=8080))

app = create_app(RuntimeConfig(env="prod"))  # an aiohttp web.Application
```

## Limitations

- The commands always listen on port 8080. To use another port, call `start`
  or `create_app` yourself.
- `barry init` does not write page templates, components or a config file.
- The CSS and JS minifier only strips comments and whitespace. It does not
  rename anything or rewrite the code.