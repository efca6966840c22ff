"""Templates and static file generation."""

from pathlib import Path

# Template content
BASE_HTML = """<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{{ title or 'Photo Gallery' }}</title>
  <link rel="stylesheet" href="/static/app.css">
</head>
<body>
  <header class="topbar">
    <nav>
      <a href="/" class="brand">Photo Gallery</a>
      <form class="search" method="get" action="/">
        <input name="album" value="{{ view.album if view else '' }}" placeholder="Album…" />
        <button>Filter</button>
      </form>
    </nav>
  </header>
  <main class="container">
    {% block content %}{% endblock %}
  </main>
</body>
</html>
"""

GALLERY_HTML = """{% extends 'base.html' %}
{% block content %}
<section class="upload">
  <h2>Upload</h2>
  <form method="post" action="/upload" enctype="multipart/form-data" class="upload-form">
    <input type="file" name="image" accept="image/*" required />
    <input name="title" placeholder="Title (optional)" />
    <input name="album" placeholder="Album (optional)" value="{{ view.album }}" />
    <button type="submit">Upload</button>
  </form>
</section>

<h1>{% if view.album %}{{ view.album }}{% else %}All photos{% endif %}</h1>
<p class="muted">{{ view.total }} photo{{ '' if view.total == 1 else 's' }}{% if view.album %} · <a href="/">show all</a>{% endif %}</p>

<div class="grid">
  {% for img in view.images %}
  <article class="card">
    <a href="/images/{{ img.filename }}" title="Open original">
      <img loading="lazy" src="/thumb/{{ thumb_size }}/{{ img.filename }}" alt="{{ img.title or img.filename }}" />
    </a>
    <div class="meta">
      <div class="fn">{{ img.title or img.filename }}</div>
      <div class="muted small">
        {{ img.created_at|datetime }}
        {% if img.album %} · <a href="/?album={{ img.album|urlencode }}">{{ img.album }}</a>{% endif %}
      </div>
    </div>
  </article>
  {% else %}
  <p class="muted">No photos yet.</p>
  {% endfor %}
</div>

{% if view.pages > 1 %}
<nav class="pager">
  {% if view.has_prev %}<a href="{{ pager_url(view.page - 1) }}">← Prev</a>{% endif %}
  <span class="muted">Page {{ view.page }} of {{ view.pages }}</span>
  {% if view.has_next %}<a href="{{ pager_url(view.page + 1) }}">Next →</a>{% endif %}
</nav>
{% endif %}
{% endblock %}
"""

APP_CSS = """:root{--bg:#0f1115;--fg:#e5e7eb;--muted:#a1a1aa;--card:#111318;--brand:#7aa2ff}
*{box-sizing:border-box}body{margin:0;background:var(--bg);color:var(--fg);font:15px/1.45 system-ui,-apple-system,Segoe UI,Roboto,Inter,Ubuntu,Helvetica,Arial}
a{color:var(--brand);text-decoration:none}.muted{color:var(--muted)}.small{font-size:12px}
.topbar{position:sticky;top:0;background:#0c0e13;border-bottom:1px solid #1c1f26;z-index:10}
.topbar nav{display:flex;align-items:center;gap:16px;padding:10px 16px}.brand{font-weight:700}
.search{margin-left:auto;display:flex;gap:8px}
.container{max-width:1280px;margin:0 auto;padding:16px}
.upload-form{display:flex;gap:8px;flex-wrap:wrap;align-items:center}
input{background:#0e1218;border:1px solid #232a39;color:var(--fg);padding:6px 10px;border-radius:8px}
button{background:var(--brand);color:#0b0d12;border:0;padding:6px 12px;border-radius:8px;cursor:pointer}
.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(220px,1fr));gap:14px}
.card{background:var(--card);border:1px solid #1f2430;border-radius:12px;overflow:hidden}
.card img{display:block;width:100%;height:220px;object-fit:contain;background:#090a0d}
.meta{padding:8px 10px}.fn{white-space:nowrap;overflow:hidden;text-overflow:ellipsis}
.pager{display:flex;justify-content:center;align-items:center;gap:10px;margin:16px}
"""


def ensure_assets(templates_dir: Path, static_dir: Path) -> None:
    """Create templates/static on first run; existing files are left alone."""
    templates_dir.mkdir(parents=True, exist_ok=True)
    static_dir.mkdir(parents=True, exist_ok=True)
    files = {
        templates_dir / "base.html": BASE_HTML,
        templates_dir / "gallery.html": GALLERY_HTML,
        static_dir / "app.css": APP_CSS,
    }
    for p, content in files.items():
        if not p.exists():
            p.write_text(content, encoding="utf-8")
