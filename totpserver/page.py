import html
import json
from typing import Optional

from .config import CLIENT_MAX_RETRIES, TIME_STEP


def _js(value) -> str:
    # JSON literal that is also safe inside a <script> block
    return json.dumps(value).replace("<", "\\u003c").replace(">", "\\u003e")


_STYLE = """
  * { box-sizing: border-box; }
  body { margin: 0; padding: 20px; background: #f5f5f5; min-height: 100vh;
         font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; }
  .page-header { text-align: center; padding: 20px 0; }
  .page-title { font-size: 28px; font-weight: 600; color: #1f2937; margin: 0 0 8px 0; }
  .page-subtitle { font-size: 14px; color: #6b7280; margin: 0; }
  .totp { width: 520px; max-width: 100%; margin: 30px auto 0; }
  .card { position: relative; }
  .press { position: absolute; left: 0; right: 0; bottom: 0; height: 5px; }
  .press span { position: absolute; left: 0; bottom: 0; height: 5px; width: 100%;
                background: #006eff; transition: all 0.3s; border-radius: 0 0 4px 4px; }
  .card-content { background: #fff; border: 1px solid #e5e7eb; border-radius: 4px; padding: 20px; }
  .input-group { display: flex; gap: 8px; margin-bottom: 20px; }
  .secret-input { flex: 1; padding: 10px 12px; border: 1px solid #dcdfe6; border-radius: 4px; }
  .secret-input.is-error { border-color: #f56c6c; }
  .get-btn { padding: 10px 20px; background: #006eff; color: #fff; border: none; border-radius: 4px; cursor: pointer; }
  .error-message { color: #f56c6c; font-size: 12px; margin: 5px 0 10px; }
  .code { text-align: center; padding: 20px 0; }
  .code span { display: inline-block; font-size: 26px; font-weight: bold; border: 1px solid #000;
               padding: 5px 10px; border-radius: 4px; letter-spacing: 2px; cursor: pointer; }
  .seconds { text-align: center; font-size: 12px; color: #666; }
  .seconds b { font-size: 20px; color: #006eff; }
  .copied-message { font-size: 12px; color: #67c23a; text-align: center; margin-top: 10px;
                    opacity: 0; transition: opacity 0.3s; height: 20px; }
  .copied-message.show { opacity: 1; }
  .url-tip { width: 520px; max-width: 100%; margin: 20px auto 0; background: #f0f9ff;
             border: 1px solid #bfdbfe; border-radius: 6px; padding: 12px; font-size: 13px; color: #1e40af; }
  .url-example { background: #f8fafc; border: 1px solid #e2e8f0; border-radius: 4px; padding: 8px;
                 margin-top: 8px; font-size: 12px; color: #475569; word-break: break-all; }
  .copy-btn { margin-left: 8px; font-size: 12px; cursor: pointer; color: #006eff;
              background: transparent; border: none; }
"""

# Countdown, refresh on expiry, bounded retry with no backoff.
_SCRIPT = """
  const $ = (id) => document.getElementById(id);
  const state = {
    secret: INITIAL.secret,
    remaining: INITIAL.remaining,
    skew: INITIAL.serverTime ? INITIAL.serverTime - Math.floor(Date.now() / 1000) : 0,
    failures: 0,
    timer: null,
  };

  function showError(message) {
    $("error-message").textContent = message;
    $("error-message").style.display = "block";
    $("secret-input").classList.add("is-error");
  }

  function hideError() {
    $("error-message").style.display = "none";
    $("secret-input").classList.remove("is-error");
  }

  function showCode(token) {
    $("token").textContent = token;
    $("code-container").style.display = "block";
    $("seconds-container").style.display = "block";
  }

  function render() {
    const pct = Math.min(100, (state.remaining / TIME_STEP) * 100);
    $("press-bar").style.width = pct + "%";
    $("seconds").textContent = state.remaining;
  }

  function startTimer() {
    clearInterval(state.timer);
    render();
    state.timer = setInterval(() => {
      state.remaining--;
      render();
      if (state.remaining <= 0) {
        clearInterval(state.timer);
        refresh();
      }
    }, 1000);
  }

  function refresh() {
    if (!state.secret) return;
    const path = "/" + encodeURIComponent(state.secret);
    $("get-btn").disabled = true;
    fetch(path + "?format=json", { cache: "no-store" })
      .then((r) => r.json().then((data) => ({ ok: r.ok, data })))
      .then(({ ok, data }) => {
        $("get-btn").disabled = false;
        if (!ok) {
          // A bad secret will not get better on retry
          state.failures = MAX_RETRIES;
          showError(data.message || data.error);
          return;
        }
        state.failures = 0;
        hideError();
        state.skew = data.serverTime - Math.floor(Date.now() / 1000);
        const now = Math.floor(Date.now() / 1000) + state.skew;
        state.remaining = (Math.floor(now / TIME_STEP) + 1) * TIME_STEP - now;
        showCode(data.token);
        startTimer();
      })
      .catch(() => {
        $("get-btn").disabled = false;
        state.failures++;
        if (state.failures < MAX_RETRIES) {
          setTimeout(refresh, 1000);
        } else {
          showError("Could not refresh the code. Press Get to try again.");
        }
      });
  }

  function load(secret) {
    state.secret = secret;
    state.failures = 0;
    const path = "/" + encodeURIComponent(secret);
    if (window.location.pathname !== path) {
      history.pushState({ secret }, "", path);
    }
    refresh();
  }

  function copyText(text) {
    if (navigator.clipboard && window.isSecureContext) {
      return navigator.clipboard.writeText(text).catch(() => fallbackCopy(text));
    }
    return fallbackCopy(text);
  }

  function fallbackCopy(text) {
    const ta = document.createElement("textarea");
    ta.value = text;
    ta.style.position = "fixed";
    ta.style.left = "-9999px";
    document.body.appendChild(ta);
    ta.select();
    const ok = document.execCommand("copy");
    document.body.removeChild(ta);
    return ok ? Promise.resolve() : Promise.reject(new Error("copy failed"));
  }

  function flashCopied() {
    $("copied").classList.add("show");
    setTimeout(() => $("copied").classList.remove("show"), 2000);
  }

  $("get-btn").addEventListener("click", () => {
    const secret = $("secret-input").value.replace(/\\s+/g, "");
    if (!secret) {
      showError("Please enter a secret key");
      return;
    }
    load(secret);
  });
  $("secret-input").addEventListener("keypress", (e) => {
    if (e.key === "Enter") $("get-btn").click();
  });
  $("token").addEventListener("click", () => {
    copyText($("token").textContent).then(flashCopied).catch(() => {});
  });
  window.addEventListener("popstate", (e) => {
    if (e.state && e.state.secret) {
      $("secret-input").value = e.state.secret;
      load(e.state.secret);
    }
  });

  const example = window.location.origin + "/YOUR_SECRET_KEY";
  $("example-url").textContent = example;
  $("example-json-url").textContent = example + "?format=json";
  $("copy-url").addEventListener("click", () => copyText(example).then(flashCopied));
  $("copy-json-url").addEventListener("click", () => copyText(example + "?format=json").then(flashCopied));

  if (INITIAL.token) {
    showCode(INITIAL.token);
    startTimer();
  } else if (INITIAL.error) {
    showError(INITIAL.error);
  }
"""


def render_page(
    secret: str = "",
    token: Optional[str] = None,
    remaining: int = TIME_STEP,
    server_time: Optional[int] = None,
    error: Optional[str] = None,
) -> str:
    """
    Build the TOTP widget page.

    The code, remaining time and server clock are embedded so the first
    paint needs no extra request; later windows are fetched from the
    JSON endpoint by the page script.
    """
    initial = {
        "secret": secret,
        "token": token,
        "remaining": remaining,
        "serverTime": server_time,
        "error": error,
    }
    error_block = (
        f'<div class="error-message" id="error-message">{html.escape(error)}</div>'
        if error
        else '<div class="error-message" id="error-message" style="display: none;"></div>'
    )
    hidden = "" if token else ' style="display: none;"'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<meta name="robots" content="noindex, nofollow">
<title>TOTP / 2FA Code Generator</title>
<style>{_STYLE}</style>
</head>
<body>
<div class="page-header">
  <h1 class="page-title">TOTP Code Generator</h1>
  <p class="page-subtitle">Works with Google Authenticator, Microsoft Authenticator and other 2FA apps</p>
</div>
<div class="totp">
  <div class="card">
    <div class="press"><span id="press-bar"></span></div>
    <div class="card-content">
      <div class="input-group">
        <input type="text" class="secret-input" id="secret-input"
               placeholder="Base32 secret key" value="{html.escape(secret, quote=True)}" autocomplete="off">
        <button class="get-btn" id="get-btn">Get</button>
      </div>
      {error_block}
      <div class="code" id="code-container"{hidden}>
        <span id="token" title="Click to copy">{html.escape(token or "")}</span>
      </div>
      <div class="seconds" id="seconds-container"{hidden}>
        <span><b id="seconds">{remaining}</b> seconds left</span>
      </div>
      <div class="copied-message" id="copied">Copied!</div>
    </div>
  </div>
</div>
<div class="url-tip">
  <div>Pass the secret in the URL to skip typing it:</div>
  <div class="url-example"><span id="example-url"></span><button class="copy-btn" id="copy-url">Copy</button></div>
  <div>Add <code>?format=json</code> to get JSON instead:</div>
  <div class="url-example"><span id="example-json-url"></span><button class="copy-btn" id="copy-json-url">Copy</button></div>
  <div style="margin-top: 8px; font-size: 12px; color: #64748b">Replace YOUR_SECRET_KEY with your own key.</div>
</div>
<script>
  const TIME_STEP = {TIME_STEP};
  const MAX_RETRIES = {CLIENT_MAX_RETRIES};
  const INITIAL = {_js(initial)};
{_SCRIPT}
</script>
</body>
</html>
"""
