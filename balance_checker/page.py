"""Single-page UI served for every non-API path.

Parsing, batching and bucketing run in the browser; each token is checked
through POST /api/check-token.
"""

from __future__ import annotations

from balance_checker.config import CONCURRENCY_LIMIT, DEFAULT_THRESHOLD

_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>SiliconFlow Token Balance Checker</title>
<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/tailwindcss/2.2.19/tailwind.min.css">
<style>
.token-container{max-height:300px;overflow-y:auto}
.loader{border:3px solid #f3f3f3;border-top:3px solid #3B82F6;border-radius:50%;width:24px;height:24px;animation:spin 1s linear infinite;display:inline-block}
@keyframes spin{0%{transform:rotate(0deg)}100%{transform:rotate(360deg)}}
</style>
</head>
<body class="bg-gray-50 text-gray-800">
<div class="min-h-screen py-8 px-4"><div class="max-w-4xl mx-auto bg-white rounded-xl shadow-md p-8">
  <h1 class="text-2xl font-bold text-center mb-6">SiliconFlow Token Balance Checker</h1>
  <div class="mb-6">
    <label for="threshold" class="block text-sm font-medium mb-2">Minimum balance:</label>
    <input type="number" id="threshold" value="__THRESHOLD__" min="0" step="0.1" class="w-32 px-3 py-2 border rounded-md">
  </div>
  <div class="mb-6">
    <label for="tokens" class="block text-sm font-medium mb-2">API tokens</label>
    <textarea id="tokens" placeholder="One sk- token per line, or comma separated" class="w-full px-3 py-2 border rounded-md h-40"></textarea>
  </div>
  <button id="checkButton" class="w-full bg-blue-600 hover:bg-blue-700 text-white font-medium py-3 rounded-md mb-8">Check tokens</button>

  <div id="loading" class="hidden text-center py-12"><div class="loader mb-4"></div><p id="progress">Checking... (0/0)</p></div>

  <div id="results" class="space-y-8 hidden">
    <section>
      <h2 class="text-lg font-semibold mb-3">Valid <span id="validCount" class="px-2 bg-green-100 text-green-800 rounded-full">0</span></h2>
      <div id="valid" class="token-container bg-gray-50 border rounded-md p-4 text-sm font-mono whitespace-pre-wrap"></div>
      <div class="flex mt-3 space-x-2">
        <button data-copy="valid" data-sep="&#10;" class="copy flex-1 bg-green-600 text-white py-2 rounded-md text-sm hidden">Copy valid</button>
        <button data-copy="valid" data-sep="," class="copy flex-1 bg-green-600 text-white py-2 rounded-md text-sm hidden">Copy valid (comma)</button>
      </div>
    </section>
    <section>
      <h2 class="text-lg font-semibold mb-3">Zero / low balance <span id="zeroCount" class="px-2 bg-yellow-100 text-yellow-800 rounded-full">0</span></h2>
      <div id="zero" class="token-container bg-gray-50 border rounded-md p-4 text-sm font-mono whitespace-pre-wrap"></div>
      <div class="flex mt-3 space-x-2">
        <button data-copy="zero" data-sep="&#10;" class="copy flex-1 bg-yellow-600 text-white py-2 rounded-md text-sm hidden">Copy zero balance</button>
        <button data-copy="zero" data-sep="," class="copy flex-1 bg-yellow-600 text-white py-2 rounded-md text-sm hidden">Copy zero balance (comma)</button>
      </div>
    </section>
    <section>
      <h2 class="text-lg font-semibold mb-3">Invalid <span id="invalidCount" class="px-2 bg-red-100 text-red-800 rounded-full">0</span></h2>
      <div id="invalid" class="token-container bg-gray-50 border rounded-md p-4 space-y-3"></div>
    </section>
    <section>
      <h2 class="text-lg font-semibold mb-3">Duplicates <span id="duplicateCount" class="px-2 bg-purple-100 text-purple-800 rounded-full">0</span></h2>
      <div id="duplicates" class="token-container bg-gray-50 border rounded-md p-4 text-sm font-mono whitespace-pre-wrap"></div>
    </section>
  </div>
</div></div>
<script>
const LIMIT = __LIMIT__;
const EXHAUSTED = 'Sorry, your account balance is insufficient';
const E = id => document.getElementById(id);
let state = {valid: [], zero: []};

function parseTokens(raw) {
  const seen = new Map(), tokens = [], duplicates = [];
  raw.split('\n').forEach(line => {
    if (!line.trim()) return;
    line.split(',').map(t => t.trim()).filter(t => t).forEach(t => {
      const n = (seen.get(t) || 0) + 1;
      seen.set(t, n);
      if (n === 1) tokens.push(t);
      if (n === 2) duplicates.push(t);
    });
  });
  return {tokens, duplicates};
}

async function checkOne(token) {
  try {
    const resp = await fetch('/api/check-token', {
      method: 'POST', headers: {'Content-Type': 'application/json'}, body: JSON.stringify({token})
    });
    return {token, ...(await resp.json())};
  } catch (err) {
    return {token, isValid: false, message: `request failed: ${err.message}`};
  }
}

function classify(buckets, result, threshold) {
  if (!result.isValid) {
    if ((result.message || '').includes(EXHAUSTED)) buckets.zero.push({token: result.token, balance: 0});
    else buckets.invalid.push(result);
    return;
  }
  const balance = parseFloat(result.balance);
  if (balance >= threshold) buckets.valid.push({token: result.token, balance});
  else buckets.zero.push({token: result.token, balance: result.balance});
}

function render(b) {
  E('valid').textContent = b.valid.map(r => `${r.token} (balance: ${r.balance})`).join('\n');
  E('zero').textContent = b.zero.map(r => `${r.token} (balance: ${r.balance})`).join('\n');
  E('invalid').innerHTML = '';
  b.invalid.forEach(r => {
    const box = document.createElement('div');
    box.className = 'bg-red-50 border border-red-200 rounded-md p-3';
    const tok = document.createElement('div');
    tok.className = 'font-mono bg-white p-2 border rounded-md mb-2 break-all text-sm';
    tok.textContent = r.token;
    const msg = document.createElement('div');
    msg.className = 'text-red-600 font-medium text-sm';
    msg.textContent = r.message;
    box.append(tok, msg);
    E('invalid').appendChild(box);
  });
  E('duplicates').textContent = b.duplicates.length
    ? `Found ${b.duplicates.length} duplicate token(s), each checked once:\n${b.duplicates.join('\n')}`
    : 'No duplicate tokens';
  E('validCount').textContent = b.valid.length;
  E('zeroCount').textContent = b.zero.length;
  E('invalidCount').textContent = b.invalid.length;
  E('duplicateCount').textContent = b.duplicates.length;
  document.querySelectorAll('.copy').forEach(btn => {
    btn.classList.toggle('hidden', b[btn.dataset.copy].length === 0);
  });
}

async function checkTokens() {
  const {tokens, duplicates} = parseTokens(E('tokens').value);
  if (tokens.length === 0) { alert('Please enter at least one token'); return; }
  const threshold = parseFloat(E('threshold').value) || 0;
  const buckets = {valid: [], zero: [], invalid: [], duplicates};
  let completed = 0;
  E('checkButton').disabled = true;
  E('results').classList.add('hidden');
  E('loading').classList.remove('hidden');
  E('progress').textContent = `Checking... (0/${tokens.length})`;
  for (let i = 0; i < tokens.length; i += LIMIT) {
    const results = await Promise.all(tokens.slice(i, i + LIMIT).map(async t => {
      const r = await checkOne(t);
      completed++;
      E('progress').textContent = `Checking... (${completed}/${tokens.length})`;
      return r;
    }));
    results.forEach(r => classify(buckets, r, threshold));
  }
  buckets.valid.sort((a, b) => b.balance - a.balance);
  state = buckets;
  render(buckets);
  E('checkButton').disabled = false;
  E('loading').classList.add('hidden');
  E('results').classList.remove('hidden');
}

function fallbackCopy(text) {
  const area = document.createElement('textarea');
  area.value = text;
  document.body.appendChild(area);
  area.select();
  document.execCommand('copy');
  document.body.removeChild(area);
}

function copyBucket(name, sep) {
  const text = state[name].map(r => r.token).join(sep);
  if (!navigator.clipboard) { fallbackCopy(text); return; }
  navigator.clipboard.writeText(text)
    .then(() => alert('Copied to clipboard'))
    .catch(() => fallbackCopy(text));
}

E('checkButton').addEventListener('click', checkTokens);
document.querySelectorAll('.copy').forEach(btn => {
  btn.addEventListener('click', () => copyBucket(btn.dataset.copy, btn.dataset.sep));
});
</script>
</body>
</html>
"""


def render_page() -> str:
    return (
        _TEMPLATE
        .replace("__LIMIT__", str(CONCURRENCY_LIMIT))
        .replace("__THRESHOLD__", str(DEFAULT_THRESHOLD))
    )
