from __future__ import annotations

from typing import Any, Dict, List

from flask import render_template_string

from .identity import decode_user_id

# Jinja autoescapes every {{ }} below; the admin key only reaches the
# script through |tojson.
ADMIN_TEMPLATE = """<!doctype html>
<html>
<head>
  <title>Admin Panel</title>
  <style>
    body { font-family: monospace; background: #121212; color: #eee; padding: 20px; }
    table { border-collapse: collapse; width: 100%; margin-bottom: 20px; }
    th, td { border: 1px solid #666; padding: 8px; }
    th { background: #222; }
    button { background: #f33; color: white; border: none; padding: 4px 8px; cursor: pointer; }
  </style>
  <script>
    const ADMIN_KEY = {{ admin_key|tojson }};
    async function del(url, payload) {
      const res = await fetch(url, {
        method: "POST",
        headers: {"Content-Type": "application/json", "X-Admin-Key": ADMIN_KEY},
        body: JSON.stringify(payload)
      });
      alert(await res.text());
      location.reload();
    }
  </script>
</head>
<body>
  <h1>Keys ({{ keys|length }})</h1>
  <h2>Cleanup</h2>
  <button onclick="del('/api/clean_old_keys', {days: 1})">Delete keys older than 24h</button>
  <table>
    <tr><th>Key</th><th>Used</th><th>Created At</th><th>Action</th></tr>
    {% for k in keys %}
    <tr>
      <td>{{ k.key }}</td><td>{{ k.used }}</td><td>{{ k.created_at }}</td>
      <td><button data-key="{{ k.key }}" onclick="del('/api/delete_key', {key: this.dataset.key})">Delete</button></td>
    </tr>
    {% endfor %}
  </table>

  <h1>Users ({{ users|length }})</h1>
  <table>
    <tr><th>User ID</th><th>IP</th><th>HWID</th><th>Cookies</th><th>Key</th><th>Registered At</th><th>Action</th></tr>
    {% for u in users %}
    <tr>
      <td>{{ u.user_id }}</td><td>{{ u.ip }}</td><td>{{ u.hwid }}</td><td>{{ u.cookies }}</td>
      <td>{{ u.key }}</td><td>{{ u.registered_at }}</td>
      <td><button data-hwid="{{ u.hwid }}" onclick="del('/api/delete_user', {hwid: this.dataset.hwid})">Delete</button></td>
    </tr>
    {% endfor %}
  </table>
</body>
</html>
"""


def _bound_ip(user_id: Any) -> str:
    if not isinstance(user_id, str):
        return ""
    try:
        ip, _ = decode_user_id(user_id)
    except ValueError:
        return ""
    return ip


def render_dashboard(keys: List[Dict[str, Any]], users: List[Dict[str, Any]], admin_key: str) -> str:
    rows = [dict(u, ip=_bound_ip(u.get("user_id"))) for u in users]
    return render_template_string(ADMIN_TEMPLATE, keys=keys, users=rows, admin_key=admin_key)
