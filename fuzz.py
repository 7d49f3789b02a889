#!/usr/bin/env python3
"""
Random fuzzer for the cleanhtml sanitizer.
Generates hostile and malformed HTML and checks that sanitize() never crashes,
never hangs, is idempotent and never lets executable markup through.
"""

import argparse
import random
import string
import sys
import time
import traceback

# Fuzzing strategies
TAGS = [
    "p", "b", "i", "em", "strong", "u", "s", "a", "ul", "ol", "li", "br", "code",
    "pre", "blockquote", "h1", "h2", "h3", "h4", "h5", "h6",
    "div", "span", "table", "tr", "td", "th", "dl", "dt", "dd", "listing",
    "script", "style", "iframe", "object", "embed", "svg", "math", "img", "form",
    "input", "textarea", "select", "option", "button", "title", "noscript", "xmp",
    "plaintext", "template", "noembed", "noframes", "frameset", "frame", "base",
    "link", "meta", "applet", "marquee", "font", "nobr",
]

RAW_TEXT_TAGS = ["script", "style", "xmp", "iframe", "noembed", "noframes", "noscript"]
RCDATA_TAGS = ["title", "textarea"]

ATTRIBUTES = [
    "href", "title", "rel", "target", "src", "style", "class", "id",
    "onclick", "onerror", "onload", "onmouseover", "OnClick", "ONLOAD",
    "srcdoc", "formaction", "xlink:href", "action", "data-x",
]

URLS = [
    "https://example.com/", "http://example.com/?a=1&b=2", "mailto:a@example.com",
    "/relative/path", "#frag", "?q=1", "//evil.example", "javascript:alert(1)",
    "JaVaScRiPt:alert(1)", "java\tscript:alert(1)", "java\nscript:alert(1)",
    "\x01javascript:alert(1)", " javascript:alert(1)", "&#106;avascript:alert(1)",
    "&#x6A;avascript:alert(1)", "javascript&colon;alert(1)", "vbscript:msgbox(1)",
    "data:text/html,<script>alert(1)</script>", "data:image/png;base64,AAAA",
    "jav&#x09;ascript:alert(1)", "feed:javascript:alert(1)",
]

SPECIAL_CHARS = [
    "\x00", "\x01", "\x0b", "\x0c", "\x7f",  # Control chars
    "\r", "\r\n",  # Newline normalization
    "\ufffd",  # Replacement character
    "\ud800",  # Lone surrogate
    "\u00a0",  # Non-breaking space
    "\u2028", "\u2029",  # Line/paragraph separators
    "\u200b",  # Zero-width space
    "\ufeff",  # BOM
]

ENTITIES = [
    "&amp;", "&lt;", "&gt;", "&quot;", "&apos;", "&nbsp;",
    "&", "&amp", "&ampamp;", "&am", "&#", "&#x", "&#123", "&#x1f;",
    "&#xdeadbeef;", "&#99999999;", "&#x;", "&unknown;", "&AMP;", "&LT",
    "&#0;", "&#x0D;", "&#13;", "&#128;", "&#x9F;", "&#xD800;", "&#x110000;",
    "&lt;script&gt;", "&#60;script&#62;", "&notin;", "&notit;",
]

PAYLOADS = [
    "<script>alert(1)</script>",
    "<img src=x onerror=alert(1)>",
    "<svg onload=alert(1)>",
    "<svg><script>alert(1)</script></svg>",
    "<iframe src=javascript:alert(1)></iframe>",
    "<object data=javascript:alert(1)></object>",
    "<embed src=javascript:alert(1)>",
    "<a href=javascript:alert(1)>x</a>",
    "<math><mi xlink:href=javascript:alert(1)>x</mi></math>",
    "<noscript><p title=\"</noscript><img src=x onerror=alert(1)>\"></noscript>",
    "<style><img src=x onerror=alert(1)></style>",
    "<textarea><script>alert(1)</script></textarea>",
    "<title><script>alert(1)</script></title>",
    "<xmp><script>alert(1)</script></xmp>",
    "<!--<script>alert(1)</script>-->",
    "<![CDATA[<script>alert(1)</script>]]>",
    "<scr<script>ipt>alert(1)</script>",
    "<<script>script>alert(1)<</script>/script>",
    "<p onclick=alert(1)>x</p>",
    "<form action=javascript:alert(1)><button formaction=javascript:alert(1)>x</button></form>",
]

# Substrings that must never appear in sanitized output (case-insensitive)
FORBIDDEN_OUTPUT = ["<script", "<style", "<iframe", "<object", "<embed", "<svg", "<img", "<math"]
DANGEROUS_SCHEMES = ("javascript", "vbscript", "data")


def random_string(min_len=0, max_len=20):
    """Generate random ASCII string."""
    length = random.randint(min_len, max_len)
    return "".join(random.choices(string.ascii_letters + string.digits, k=length))


def random_whitespace():
    """Generate random whitespace (including weird ones)."""
    ws = [" ", "\t", "\n", "\r", "\f", "\v", "\x00", ""]
    return "".join(random.choices(ws, k=random.randint(0, 5)))


def fuzz_tag_name():
    """Generate malformed tag names."""
    strategies = [
        lambda: random.choice(TAGS),  # Valid tag
        lambda: random.choice(TAGS).upper(),  # Uppercase
        lambda: random.choice(TAGS) + random_string(1, 5),  # Tag with suffix
        lambda: random_string(1, 10),  # Random string
        lambda: "",  # Empty
        lambda: random.choice(SPECIAL_CHARS) + random.choice(TAGS),  # Special prefix
        lambda: random.choice(TAGS) + random.choice(SPECIAL_CHARS),  # Special suffix
        lambda: random.choice(TAGS) + "/" + random.choice(TAGS),  # Slash in name
    ]
    return random.choice(strategies)()


def fuzz_attribute():
    """Generate malformed attributes."""
    name = random.choice([
        lambda: random.choice(ATTRIBUTES),
        lambda: random_string(1, 10),
        lambda: "on" + random_string(2, 8),
        lambda: random.choice(["=", '"', "'", "<", "/"]),
    ])()
    value = random.choice([
        lambda: random.choice(URLS),
        lambda: random_string(0, 30),
        lambda: random.choice(ENTITIES),
        lambda: random.choice(PAYLOADS),
        lambda: random.choice(SPECIAL_CHARS) * random.randint(1, 4),
        lambda: "",
    ])()
    quote_start, quote_end = random.choice([
        ('="', '"'),
        ("='", "'"),
        ("=", ""),  # Unquoted
        (" = ", ""),  # Spaces around equals
        ("", ""),  # No value
        ('="', ""),  # Unclosed quote
    ])
    if not quote_start:
        return name
    return f"{name}{quote_start}{value}{quote_end}"


def fuzz_open_tag():
    """Generate a malformed start tag."""
    attrs = " ".join(fuzz_attribute() for _ in range(random.randint(0, 4)))
    closing = random.choice([">", "/>", " >", "", random_whitespace() + ">"])
    return f"<{fuzz_tag_name()}{random_whitespace() or ' '}{attrs}{closing}"


def fuzz_close_tag():
    """Generate a malformed end tag."""
    return random.choice([
        lambda: f"</{fuzz_tag_name()}>",
        lambda: f"</{random.choice(TAGS)} {fuzz_attribute()}>",
        lambda: "</>",
        lambda: "</",
        lambda: f"</{random.choice(TAGS)}",
    ])()


def fuzz_comment():
    """Generate comments and bogus markup declarations."""
    return random.choice([
        lambda: f"<!--{random_string()}-->",
        lambda: "<!-->",
        lambda: "<!--->",
        lambda: f"<!--{random_string()}--!>",
        lambda: f"<!--{random.choice(PAYLOADS)}",
        lambda: f"<!DOCTYPE {random_string()}>",
        lambda: f"<![CDATA[{random.choice(PAYLOADS)}]]>",
        lambda: f"<?xml {random_string()}?>",
        lambda: f"<!{random_string()}>",
    ])()


def fuzz_raw_text():
    """Generate raw text / RCDATA elements with tricky bodies."""
    tag = random.choice(RAW_TEXT_TAGS + RCDATA_TAGS)
    body = random.choice([
        lambda: random.choice(PAYLOADS),
        lambda: f"</{tag}",
        lambda: f"</{tag.upper()}>",
        lambda: f"</{tag}x>",
        lambda: random.choice(ENTITIES),
        lambda: "",
    ])()
    end = random.choice([f"</{tag}>", f"</{tag.upper()} >", "", f"</{tag}/>"])
    return f"<{tag}>{body}{end}"


def fuzz_text():
    """Generate text content with entities and special characters."""
    strategies = [
        lambda: random_string(1, 30),
        lambda: random.choice(ENTITIES),
        lambda: random.choice(SPECIAL_CHARS),
        lambda: "<" + random_string(0, 3),
        lambda: "a < b > c",
        lambda: "\n" * random.randint(1, 3),
    ]
    return random.choice(strategies)()


def fuzz_nested_structure(depth=0, max_depth=8):
    """Generate randomly nested (and misnested) markup."""
    if depth >= max_depth or random.random() < 0.3:
        return fuzz_text()
    tag = random.choice(TAGS)
    inner = "".join(fuzz_nested_structure(depth + 1, max_depth) for _ in range(random.randint(0, 3)))
    end = random.choice([f"</{tag}>", "", f"</{random.choice(TAGS)}>"])
    return f"<{tag}>{inner}{end}"


def fuzz_deeply_nested():
    """Generate deep nesting to exercise the depth bound."""
    tag = random.choice(["b", "div", "span", "li", "a", "p", "blockquote"])
    depth = random.randint(100, 2000)
    closing = f"</{tag}>" * random.randint(0, depth)
    return f"<{tag}>" * depth + random.choice(PAYLOADS) + closing


def fuzz_mutation_xss():
    """Generate markup that changes meaning when re-parsed."""
    return random.choice([
        lambda: "<pre>\n\n" + random_string() + "</pre>",
        lambda: f"<p><{random.choice(['div', 'ul', 'h1'])}>{random_string()}",
        lambda: f"<ul><span><li>{random_string()}<li>{random_string()}</ul>",
        lambda: f"<h1><span><h2>{random_string()}</h2></span></h1>",
        lambda: f"<a href=https://x><div><a href=https://y>{random_string()}</a></div></a>",
        lambda: f'<a title="</a><img src=x onerror=alert(1)>">{random_string()}</a>',
        lambda: f"<li><b>{random_string()}<li>{random_string()}",
    ])()


def generate_fuzzed_html():
    """Generate a complete fuzzed HTML fragment."""
    generators = [
        fuzz_open_tag,
        fuzz_close_tag,
        fuzz_comment,
        fuzz_raw_text,
        fuzz_text,
        fuzz_nested_structure,
        fuzz_mutation_xss,
        lambda: random.choice(PAYLOADS),
    ]
    parts = []
    for _ in range(random.randint(1, 20)):
        parts.append(random.choice(generators)())
    if random.random() < 0.05:
        parts.append(fuzz_deeply_nested())
    return "".join(parts)


def check_output(output):
    """Return a list of property violations for one sanitize() result."""
    from cleanhtml import CleanHTML, uri_scheme

    problems = []
    lowered = output.lower()
    for needle in FORBIDDEN_OUTPUT:
        if needle in lowered:
            problems.append(f"forbidden markup {needle!r} in output")

    # Attributes are checked on the re-parsed tree, not on the markup text.
    stack = [CleanHTML(output).root]
    while stack:
        node = stack.pop()
        if node.children:
            stack.extend(node.children)
        for name, value in (getattr(node, "attrs", None) or {}).items():
            if name.startswith("on"):
                problems.append(f"event handler {name!r} on <{node.name}>")
            if name in ("href", "src", "action") and uri_scheme(value or "") in DANGEROUS_SCHEMES:
                problems.append(f"dangerous URL in {name!r} on <{node.name}>")
    return problems


def run_fuzzer(num_tests, seed=None, verbose=False, save_failures=False):
    """Run the fuzzer against cleanhtml.sanitize."""
    from cleanhtml import sanitize

    if seed is not None:
        random.seed(seed)

    crashes = []
    hangs = []
    violations = []
    successes = 0

    print(f"Fuzzing cleanhtml.sanitize with {num_tests} test cases...")
    start_time = time.time()

    for i in range(num_tests):
        html = generate_fuzzed_html()

        if verbose and i % 100 == 0:
            print(f"  Test {i}/{num_tests}...")

        try:
            start = time.perf_counter()
            output = sanitize(html)
            elapsed = time.perf_counter() - start
            again = sanitize(output)
        except Exception as e:
            crashes.append({
                "test_num": i,
                "html": html,
                "error": str(e),
                "traceback": traceback.format_exc(),
            })
            if verbose:
                print(f"  CRASH: Test {i}: {e}")
            continue

        problems = check_output(output)
        if again != output:
            problems.append("not idempotent")
        if problems:
            violations.append({"test_num": i, "html": html, "output": output, "problems": problems})
            if verbose:
                print(f"  VIOLATION: Test {i}: {', '.join(problems)}")

        # Check for hangs (>5 seconds)
        if elapsed > 5.0:
            hangs.append({
                "test_num": i,
                "html": html,
                "time": elapsed,
            })
            if verbose:
                print(f"  HANG: Test {i} took {elapsed:.2f}s")
        elif not problems:
            successes += 1

    elapsed_total = time.time() - start_time

    # Report results
    print(f"\n{'='*60}")
    print("FUZZING RESULTS: cleanhtml")
    print(f"{'='*60}")
    print(f"Total tests:    {num_tests}")
    print(f"Successes:      {successes}")
    print(f"Crashes:        {len(crashes)}")
    print(f"Violations:     {len(violations)}")
    print(f"Hangs (>5s):    {len(hangs)}")
    print(f"Total time:     {elapsed_total:.2f}s")
    print(f"Tests/second:   {num_tests/elapsed_total:.1f}")

    if crashes:
        print(f"\n{'='*60}")
        print("CRASH DETAILS:")
        print(f"{'='*60}")
        for crash in crashes[:10]:  # Show first 10
            print(f"\nTest #{crash['test_num']}:")
            print(f"  HTML: {crash['html'][:200]!r}...")
            print(f"  Error: {crash['error']}")
        if len(crashes) > 10:
            print(f"\n... and {len(crashes) - 10} more crashes")

    if violations:
        print(f"\n{'='*60}")
        print("VIOLATION DETAILS:")
        print(f"{'='*60}")
        for violation in violations[:10]:
            print(f"\nTest #{violation['test_num']}: {', '.join(violation['problems'])}")
            print(f"  HTML:   {violation['html'][:200]!r}...")
            print(f"  Output: {violation['output'][:200]!r}...")

    if hangs:
        print(f"\n{'='*60}")
        print("HANG DETAILS:")
        print(f"{'='*60}")
        for hang in hangs[:5]:
            print(f"\nTest #{hang['test_num']} ({hang['time']:.2f}s):")
            print(f"  HTML: {hang['html'][:200]!r}...")

    if save_failures and (crashes or violations or hangs):
        filename = f"fuzz_failures_cleanhtml_{int(time.time())}.txt"
        with open(filename, "w", encoding="utf-8", errors="backslashreplace") as f:
            f.write("Fuzzing results for cleanhtml\n")
            f.write(f"Seed: {seed}\n\n")
            for crash in crashes:
                f.write(f"=== CRASH #{crash['test_num']} ===\n")
                f.write(f"HTML:\n{crash['html']}\n")
                f.write(f"Error: {crash['error']}\n")
                f.write(f"Traceback:\n{crash['traceback']}\n\n")
            for violation in violations:
                f.write(f"=== VIOLATION #{violation['test_num']} ===\n")
                f.write(f"Problems: {', '.join(violation['problems'])}\n")
                f.write(f"HTML:\n{violation['html']}\n")
                f.write(f"Output:\n{violation['output']}\n\n")
            for hang in hangs:
                f.write(f"=== HANG #{hang['test_num']} ({hang['time']:.2f}s) ===\n")
                f.write(f"HTML:\n{hang['html']}\n\n")
        print(f"\nFailures saved to {filename}")

    return not crashes and not violations and not hangs


def main():
    parser = argparse.ArgumentParser(description="Fuzz the cleanhtml sanitizer with hostile input")
    parser.add_argument(
        "--num-tests", "-n",
        type=int,
        default=1000,
        help="Number of test cases to generate (default: 1000)",
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--save-failures",
        action="store_true",
        help="Save failures to a file",
    )
    parser.add_argument(
        "--sample",
        type=int,
        metavar="N",
        help="Just print N sample fuzzed HTML fragments (no sanitizing)",
    )

    args = parser.parse_args()

    if args.sample:
        if args.seed:
            random.seed(args.seed)
        for i in range(args.sample):
            print(f"=== Sample {i+1} ===")
            print(repr(generate_fuzzed_html()))
            print()
        return

    success = run_fuzzer(
        args.num_tests,
        seed=args.seed,
        verbose=args.verbose,
        save_failures=args.save_failures,
    )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
