"""
Embeddable chat widget served at GET /widget.js.
"""

from __future__ import annotations

import json

API_URL_PLACEHOLDER = "__SITECHAT_API_URL__"


def embed_code(origin: str, bot_id: str) -> str:
    """HTML snippet a site owner pastes into their pages."""
    return f'<script src="{origin}/widget.js" data-bot-id="{bot_id}"></script>'


def render_widget(origin: str) -> str:
    """Widget script bound to the API served from ``origin``."""
    return WIDGET_JS.replace(API_URL_PLACEHOLDER, json.dumps(origin.rstrip("/")))


WIDGET_JS = r"""(function () {
  'use strict';

  var script = document.currentScript || document.querySelector('script[data-bot-id]');
  var botId = script && script.getAttribute('data-bot-id');
  var apiUrl = __SITECHAT_API_URL__;
  if (!botId) {
    console.error('sitechat: missing data-bot-id');
    return;
  }

  var storageKey = 'sitechat_session_' + botId;
  var sessionId = localStorage.getItem(storageKey);
  if (!sessionId) {
    sessionId = 'session_' + Math.random().toString(36).substring(2) + Date.now().toString(36);
    localStorage.setItem(storageKey, sessionId);
  }

  var css = [
    '.sitechat{position:fixed;bottom:20px;right:20px;z-index:10000;font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,sans-serif}',
    '.sitechat-toggle{width:56px;height:56px;border-radius:50%;border:none;cursor:pointer;background:#4f46e5;color:#fff;font-size:24px;box-shadow:0 4px 12px rgba(0,0,0,.2)}',
    '.sitechat-window{display:none;position:absolute;bottom:72px;right:0;width:360px;height:520px;background:#fff;border-radius:12px;box-shadow:0 10px 40px rgba(0,0,0,.2);flex-direction:column;overflow:hidden}',
    '.sitechat-window.open{display:flex}',
    '.sitechat-header{background:#4f46e5;color:#fff;padding:14px 16px;font-weight:600;display:flex;justify-content:space-between}',
    '.sitechat-close{background:none;border:none;color:#fff;cursor:pointer;font-size:18px}',
    '.sitechat-messages{flex:1;overflow-y:auto;padding:14px;display:flex;flex-direction:column;gap:10px}',
    '.sitechat-msg{max-width:85%;padding:10px 14px;border-radius:16px;font-size:14px;line-height:1.5;white-space:pre-wrap}',
    '.sitechat-msg.user{align-self:flex-end;background:#4f46e5;color:#fff}',
    '.sitechat-msg.bot{align-self:flex-start;background:#f3f4f6;color:#111}',
    '.sitechat-links{align-self:flex-start;font-size:12px}',
    '.sitechat-links a{display:block;color:#2563eb;word-break:break-all}',
    '.sitechat-form{display:flex;border-top:1px solid #e5e7eb}',
    '.sitechat-input{flex:1;border:none;padding:12px;font-size:14px;outline:none}',
    '.sitechat-send{border:none;background:#4f46e5;color:#fff;padding:0 16px;cursor:pointer}'
  ].join('\n');
  var style = document.createElement('style');
  style.textContent = css;
  document.head.appendChild(style);

  var root = document.createElement('div');
  root.className = 'sitechat';
  root.innerHTML =
    '<div class="sitechat-window">' +
    '<div class="sitechat-header"><span>Chat</span><button class="sitechat-close" aria-label="Close">&times;</button></div>' +
    '<div class="sitechat-messages"></div>' +
    '<form class="sitechat-form"><input class="sitechat-input" placeholder="Ask a question..." autocomplete="off"/>' +
    '<button class="sitechat-send" type="submit">Send</button></form>' +
    '</div>' +
    '<button class="sitechat-toggle" aria-label="Open chat">&#128172;</button>';
  document.body.appendChild(root);

  var win = root.querySelector('.sitechat-window');
  var messages = root.querySelector('.sitechat-messages');
  var form = root.querySelector('.sitechat-form');
  var input = root.querySelector('.sitechat-input');

  function escapeHtml(text) {
    var div = document.createElement('div');
    div.textContent = text;
    return div.innerHTML;
  }

  function render(text) {
    return escapeHtml(text).replace(/\*\*(.+?)\*\*/g, '<strong>$1</strong>');
  }

  function addMessage(text, who) {
    var el = document.createElement('div');
    el.className = 'sitechat-msg ' + who;
    el.innerHTML = who === 'bot' ? render(text) : escapeHtml(text);
    messages.appendChild(el);
    messages.scrollTop = messages.scrollHeight;
    return el;
  }

  function addLinks(links) {
    if (!links || !links.length) return;
    var el = document.createElement('div');
    el.className = 'sitechat-links';
    links.forEach(function (url) {
      var a = document.createElement('a');
      a.href = url;
      a.target = '_blank';
      a.rel = 'noopener';
      a.textContent = url;
      el.appendChild(a);
    });
    messages.appendChild(el);
  }

  function send(text) {
    addMessage(text, 'user');
    var pending = addMessage('...', 'bot');
    fetch(apiUrl + '/api/chat', {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify({id: botId, message: text, sessionId: sessionId})
    })
      .then(function (res) { return res.json(); })
      .then(function (data) {
        pending.innerHTML = render(data.response || data.error || 'Something went wrong.');
        addLinks(data.links);
      })
      .catch(function () {
        pending.textContent = 'Connection error. Please try again.';
      });
  }

  root.querySelector('.sitechat-toggle').addEventListener('click', function () {
    win.classList.toggle('open');
    if (win.classList.contains('open')) input.focus();
  });
  root.querySelector('.sitechat-close').addEventListener('click', function () {
    win.classList.remove('open');
  });
  form.addEventListener('submit', function (e) {
    e.preventDefault();
    var text = input.value.trim();
    if (!text) return;
    input.value = '';
    send(text);
  });
})();
"""
