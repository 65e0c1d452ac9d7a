from __future__ import annotations
import argparse, json
from altwords.config import TOP_K
from altwords.errors import MalformedInput
from altwords_web.web import add_engine_arguments, engine_from_args

def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Alternative words CLI (Engine-backed)")
    add_engine_arguments(p)
    p.add_argument("-k", type=int, default=TOP_K, help="Number of alternatives")
    p.add_argument("--word", default=None, help="Single word to find alternatives for")
    p.add_argument("--sentence", default=None, help="Sentence holding the query word")
    p.add_argument("--start", type=int, default=None, help="Query start (code points)")
    p.add_argument("--end", type=int, default=None, help="Query end (code points)")
    p.add_argument("--repl", action="store_true", help="Interactive loop after init")
    p.add_argument("--json", action="store_true", help="Emit JSON rows")

    args = p.parse_args(argv)
    if args.sentence is not None and (args.start is None or args.end is None):
        p.error("--sentence requires --start and --end")

    eng = engine_from_args(p, args)
    try:
        def show(rows: list[tuple[str, float | None]]):
            if args.json:
                print(json.dumps(
                    [{"word": w} if s is None else {"word": w, "score": s} for w, s in rows],
                    ensure_ascii=False, indent=2,
                ))
                return
            if not rows:
                print("(no alternatives)"); return
            for i, (w, s) in enumerate(rows, 1):
                print(f"{i:<3} {w:<24} {'' if s is None else f'{s:.4f}'}")

        def run_word(word: str):
            show([(r.word, r.score) for r in eng.rank(word, args.k)])

        if args.word:
            run_word(args.word)

        if args.sentence is not None:
            try:
                words = eng.sentence_find_alternative_words(args.sentence, args.start, args.end, args.k)
            except MalformedInput as exc:
                print(f"error: {exc}")
                return 2
            show([(w, None) for w in words])

        if args.repl:
            print("Type a word (empty line to exit).")
            while True:
                try:
                    q = input("> ").strip()
                except (EOFError, KeyboardInterrupt):
                    break
                if not q:
                    break
                run_word(q)

        return 0
    finally:
        eng.shutdown()

if __name__ == "__main__":
    raise SystemExit(main())
