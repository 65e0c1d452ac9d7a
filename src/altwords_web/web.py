from __future__ import annotations
import argparse
from flask import Flask, request, jsonify, Response
from altwords.config import Settings, TOP_K, WORDS_TO_CAPTURE
from altwords.engine import Engine
from altwords.errors import MalformedInput
from altwords.synonyms import WordNetSynonyms

app = Flask(__name__)
_engine: Engine | None = None


def _require_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Run main() or set web._engine first.")
    return _engine


# ---------- API ----------
@app.get("/health")
def health():
    eng = _engine
    if eng is None or eng.storage is None:
        return jsonify({"ok": False, "publications": 0}), 503
    return jsonify({"ok": True, "publications": eng.storage.count()})

@app.get("/api/alternatives")
def api_alternatives():
    word = request.args.get("word", "", type=str).strip()
    k = request.args.get("k", TOP_K, type=int)
    if not word:
        return jsonify([])
    try:
        rows = _require_engine().rank(word, k)
    except MalformedInput as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify([{"word": r.word, "score": r.score} for r in rows])

@app.get("/api/sentence")
def api_sentence():
    sentence = request.args.get("sentence", "", type=str)
    start = request.args.get("start", type=int)
    end = request.args.get("end", type=int)
    k = request.args.get("k", TOP_K, type=int)
    if start is None or end is None:
        return jsonify({"error": "start and end are required integers"}), 400
    try:
        words = _require_engine().sentence_find_alternative_words(sentence, start, end, k)
    except MalformedInput as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"query": sentence[start:end], "alternatives": words})

# ---------- UI ----------
@app.get("/")
def home():
    # Select a word in the sentence (or type one) and ask for alternatives.
    html = r"""
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>Alternative words</title>
<style>
:root{
  --bg:#0b0f14; --panel:#0f141b; --ink:#cfd8e3; --muted:#8a94a6;
  --accent:#6ee7ff; --border:#1c2530;
}
*{box-sizing:border-box}
body{ margin:0; background:var(--bg); color:var(--ink);
  font:16px/1.45 system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,"Helvetica Neue",Arial; }
.container{ max-width:820px; margin:24px auto; padding:0 16px; }
.card{ background:var(--panel); border:1px solid var(--border); border-radius:16px; padding:18px; }
h1{ font-size:20px; margin:0 0 8px 0; }
textarea,input{ width:100%; padding:12px 14px; border-radius:12px; border:1px solid var(--border);
  background:#0b1117; color:var(--ink); font-size:16px; outline:none; }
textarea:focus,input:focus{ border-color:var(--accent) }
.controls{ display:flex; gap:12px; margin:12px 0; }
.btn{ padding:10px 14px; border-radius:10px; border:1px solid var(--border); background:#0b1117;
  color:var(--ink); cursor:pointer; }
.meta{ color:var(--muted); font-size:13px; }
ol{ margin:12px 0 0 0; padding-left:24px; }
.err{ color:#ffb0b0; }
</style>
</head>
<body>
  <div class="container">
    <div class="card">
      <h1>Alternative words</h1>
      <textarea id="s" rows="3" placeholder="Type a sentence, then select a word in it…"></textarea>
      <div class="controls">
        <input id="w" type="text" placeholder="…or type a single word" autocomplete="off" />
        <button id="go" class="btn">Suggest</button>
      </div>
      <div id="stats" class="meta">Ready.</div>
      <ol id="out"></ol>
    </div>
  </div>
<script>
const $ = (sel) => document.querySelector(sel);
const s = $("#s"), w = $("#w"), out = $("#out"), stats = $("#stats");

// selectionStart/End count UTF-16 units; the API slices by code points
function codePoints(text, units){
  return Array.from(text.slice(0, units)).length;
}

function render(words){
  out.innerHTML = words.map(x => `<li>${x}</li>`).join("");
  stats.textContent = words.length ? `${words.length} alternatives` : "No alternatives.";
}

async function suggest(){
  let url;
  if(s.selectionEnd > s.selectionStart){
    const start = codePoints(s.value, s.selectionStart), end = codePoints(s.value, s.selectionEnd);
    url = `/api/sentence?sentence=${encodeURIComponent(s.value)}&start=${start}&end=${end}`;
  }else if(w.value.trim()){
    url = `/api/alternatives?word=${encodeURIComponent(w.value.trim())}`;
  }else{
    stats.textContent = "Select a word or type one.";
    return;
  }
  try{
    const resp = await fetch(url);
    const data = await resp.json();
    if(!resp.ok) throw new Error(data.error || `HTTP ${resp.status}`);
    render(Array.isArray(data) ? data.map(r => r.word) : data.alternatives);
  }catch(e){
    out.innerHTML = "";
    stats.innerHTML = `<span class="err">Error: ${e.message ?? e}</span>`;
  }
}
$("#go").addEventListener("click", suggest);
w.addEventListener("keydown", (ev)=>{ if(ev.key === "Enter") suggest(); });
</script>
</body>
</html>
"""
    return Response(html, mimetype="text/html")


def add_engine_arguments(ap: argparse.ArgumentParser) -> None:
    """Flags shared by the web server and the CLI for building/loading an Engine."""
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("--build", action="store_true", help="Ingest --roots and/or --wikipedia")
    mode.add_argument("--load", action="store_true", help="Reopen a SQLite --db built earlier")
    ap.add_argument("--roots", nargs="+", default=[], help="Folders to scan for .txt/.md")
    ap.add_argument("--wikipedia", default=None, help="MediaWiki XML dump to ingest")
    ap.add_argument("--wikipedia-limit", type=int, default=None)
    ap.add_argument("--db", default=None, help='Storage DSN: "sqlite:///path" or "memory://"')
    ap.add_argument("--tfidf-db", default=None, help="TF-IDF DSN (defaults next to --db)")
    ap.add_argument("--unit", choices=["line", "paragraph"], help="Text unit")
    ap.add_argument("--window", type=int, default=WORDS_TO_CAPTURE, help="Context words on each side")
    ap.add_argument("--tfidf", action="store_true", help="Weight contexts by tf-idf")
    ap.add_argument("--wordnet", action="store_true", help="Expand queries with WordNet synonyms")
    ap.add_argument("--category", action="append", default=None, help="Restrict to a publication category")
    ap.add_argument("--verbose", action="store_true")

def engine_from_args(ap: argparse.ArgumentParser, args: argparse.Namespace) -> Engine:
    settings = Settings(
        words_to_capture=args.window,
        enable_tfidf_weighting=args.tfidf,
        categories=frozenset(args.category) if args.category else None,
    )
    eng = Engine(settings=settings, synonyms=WordNetSynonyms() if args.wordnet else None)
    if args.build:
        if not args.roots and not args.wikipedia:
            ap.error("--build requires --roots or --wikipedia")
        eng.build(
            roots=args.roots, db_dsn=args.db, tfidf_dsn=args.tfidf_db, unit=args.unit,
            wikipedia=args.wikipedia, wikipedia_limit=args.wikipedia_limit, verbose=args.verbose,
        )
    else:
        if not args.db:
            ap.error("--load requires --db")
        eng.load(db_dsn=args.db, tfidf_dsn=args.tfidf_db, verbose=args.verbose)
    return eng

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run Flask UI on top of Engine")
    add_engine_arguments(ap)
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    args = ap.parse_args(argv)

    global _engine
    _engine = engine_from_args(ap, args)
    try:
        app.run(host=args.host, port=args.port, debug=args.verbose)
    finally:
        _engine.shutdown()
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
