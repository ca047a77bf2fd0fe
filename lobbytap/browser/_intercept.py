"""In-page fetch interception.

The script below runs inside the target page.  It swaps ``window.fetch``
for a wrapper that watches one exact path, forwards that response's JSON
to the collector, and reports through the bridge functions
(``updateStatus`` / ``reload``).  A reload wipes the page, so the script
is evaluated again after every clearance cycle.

Forwarding goes through the saved native fetch so it is never itself
intercepted.  The page's own code gets a fresh response built from the
parsed JSON.
"""

import logging

logger = logging.getLogger("lobbytap")

INTERCEPT_SCRIPT = """
({ watchedPath, collectorUrl, countField }) => {
  if (window.__lobbytapNativeFetch) {
    return false;
  }
  const nativeFetch = window.fetch.bind(window);
  window.__lobbytapNativeFetch = nativeFetch;

  const report = async (msg) => {
    try {
      await window.updateStatus(msg);
    } catch (e) {}
  };

  const requestPath = (input) => {
    try {
      const raw = typeof input === 'string'
        ? input
        : (input && input.url) || String(input);
      return new URL(raw, window.location.href).pathname;
    } catch (e) {
      return null;
    }
  };

  const describe = (err) => (err && err.message) || String(err);

  window.fetch = async function (input, init) {
    const response = await nativeFetch(input, init);
    if (requestPath(input) !== watchedPath) {
      return response;
    }

    let payload;
    try {
      payload = await response.clone().json();
    } catch (e) {
      return response;
    }

    const items = payload ? payload[countField] : undefined;
    const count = Array.isArray(items) ? items.length : 0;
    await report({ working: true, lastLog: `Intercepted ${count} ${countField}` });

    try {
      const forwarded = await nativeFetch(collectorUrl, {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify(payload),
      });
      if (!forwarded.ok) {
        await report({
          working: false,
          lastLog: `Collector responded with HTTP ${forwarded.status}`,
        });
      } else {
        await report({ working: true, lastLog: 'Forwarded to collector' });
      }
    } catch (err) {
      await report({ working: false, lastLog: `Forwarding failed: ${describe(err)}` });
      try {
        await window.reload();
      } catch (e) {}
      await report({ lastLog: 'Reload requested after forwarding failure' });
    }

    return new Response(JSON.stringify(payload), {
      status: 200,
      statusText: 'OK',
      headers: { 'Content-Type': 'application/json' },
    });
  };
  return true;
}
"""


async def inject(
    session,
    watched_path: str,
    collector_url: str,
    count_field: str,
) -> bool:
    """Install the fetch wrapper in the current page.

    Returns False when the current document already carries it.
    """
    armed = await session.evaluate(
        INTERCEPT_SCRIPT,
        {
            "watchedPath": watched_path,
            "collectorUrl": collector_url,
            "countField": count_field,
        },
    )
    if armed:
        logger.info(
            "Interceptor armed for %s -> %s", watched_path, collector_url
        )
    else:
        logger.debug("Interceptor already present in this page")
    return bool(armed)
