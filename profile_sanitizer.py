#!/usr/bin/env python3
"""Profile cleanhtml.sanitize to find performance bottlenecks."""

import cProfile
import io
import pstats

from cleanhtml import sanitize

# Sample HTML: mostly allowed markup with a sprinkling of hostile content
html = """
<h2>Quarterly <em>notes</em></h2>
<p>Revenue is <b>up</b> &amp; costs are <i>down</i>.</p>
<ul>
    <li><a href="https://example.com/report?q=1&amp;x=2">Report</a></li>
    <li><a href="javascript:alert(1)" onclick="steal()">Bad link</a></li>
    <li><span style="color:red">Unwrapped <strong>span</strong></span></li>
</ul>
<script>alert("xss")</script>
<pre><code>if (a &lt; b) { return; }</code></pre>
<blockquote title="quote">Stay <u>focused</u>.<img src=x onerror=alert(1)></blockquote>
""" * 100  # Repeat for more meaningful results

# Profile
pr = cProfile.Profile()
pr.enable()

for _ in range(10):
    _ = sanitize(html)

pr.disable()

# Print stats
s = io.StringIO()
ps = pstats.Stats(pr, stream=s).sort_stats("cumulative")
ps.print_stats(50)  # Top 50 functions
print(s.getvalue())
