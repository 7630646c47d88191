from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard() -> HTMLResponse:
    return HTMLResponse(content="""<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Propwatch Dashboard</title>
    <style>
      body { font-family: Arial, sans-serif; margin: 20px; color: #111; }
      h1, h2 { margin: 0 0 12px 0; }
      .layout { display: grid; grid-template-columns: 320px 1fr; gap: 16px; }
      .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; margin-bottom: 12px; }
      .game summary { cursor: pointer; font-weight: bold; }
      .players button { margin: 2px; background: #eee; color: #111; border: 0; border-radius: 6px; padding: 4px 8px; cursor: pointer; }
      .players button.active { background: #0b5fff; color: #fff; }
      select, button.poll { padding: 6px 10px; }
      button.poll { background: #0b5fff; color: #fff; border: 0; border-radius: 6px; cursor: pointer; }
      .muted { color: #666; font-size: 13px; }
      .legend span { display: inline-block; margin-right: 12px; font-size: 13px; }
      .errors { color: #b00020; font-size: 13px; }
    </style>
  </head>
  <body>
    <h1>Player Prop Price History</h1>
    <div style=\"margin-bottom: 16px;\">
      <label>Market <select id=\"market\"><option value=\"\">Select a market</option></select></label>
      <button class=\"poll\" id=\"pollNow\">Poll Odds Now</button>
      <span id=\"pollResult\" class=\"muted\"></span>
    </div>

    <div class=\"layout\">
      <div>
        <h2>Games Today</h2>
        <div id=\"games\" class=\"muted\">Loading...</div>
      </div>
      <div class=\"card\">
        <h2>Odds Price History</h2>
        <svg id=\"chart\" width=\"100%\" height=\"400\" viewBox=\"0 0 800 400\" preserveAspectRatio=\"none\"></svg>
        <div id=\"legend\" class=\"legend\"></div>
        <div id=\"seriesErrors\" class=\"errors\"></div>
      </div>
    </div>

    <script>
      const selected = new Set();

      async function getJson(url, options) {
        const response = await fetch(url, options);
        if (!response.ok) throw new Error(`${url} failed (${response.status})`);
        return response.json();
      }

      function colorFor(idx) {
        return `hsl(${(idx * 60) % 360}, 70%, 50%)`;
      }

      function localDateParams() {
        const now = new Date();
        const pad = (n) => String(n).padStart(2, '0');
        return new URLSearchParams({
          date: `${now.getFullYear()}-${pad(now.getMonth() + 1)}-${pad(now.getDate())}`,
          tz_offset_minutes: String(now.getTimezoneOffset()),
        });
      }

      async function loadGames() {
        const container = document.getElementById('games');
        const games = await getJson(`/odds/games?${localDateParams().toString()}`);
        const markets = new Set();
        container.replaceChildren();
        if (!games.length) {
          container.textContent = 'No games today';
          return;
        }
        for (const game of games) {
          game.markets.forEach((m) => markets.add(m));
          const details = document.createElement('details');
          details.className = 'game card';
          const start = new Date(game.commence_time).toLocaleString();
          const summary = document.createElement('summary');
          summary.textContent = `${game.away_team} @ ${game.home_team} (${start})`;
          details.appendChild(summary);
          const list = document.createElement('div');
          list.className = 'players';
          for (const player of game.players) {
            const key = `${player}@${game.id}`;
            const button = document.createElement('button');
            button.textContent = player;
            button.className = selected.has(key) ? 'active' : '';
            button.addEventListener('click', () => {
              if (selected.has(key)) {
                selected.delete(key);
                button.className = '';
              } else {
                selected.add(key);
                button.className = 'active';
              }
              loadSeries();
            });
            list.appendChild(button);
          }
          details.appendChild(list);
          container.appendChild(details);
        }
        const select = document.getElementById('market');
        for (const market of [...markets].sort()) {
          const option = document.createElement('option');
          option.value = market;
          option.textContent = market;
          select.appendChild(option);
        }
      }

      function drawChart(series) {
        const svg = document.getElementById('chart');
        const legend = document.getElementById('legend');
        svg.replaceChildren();
        legend.replaceChildren();
        const points = series.flatMap((s) => s.points);
        if (!points.length) return;

        const times = points.map((p) => new Date(p.observed_at).getTime());
        const prices = points.map((p) => p.price);
        const tMin = Math.min(...times), tMax = Math.max(...times);
        const pMin = Math.min(...prices), pMax = Math.max(...prices);
        const x = (t) => 40 + ((t - tMin) / Math.max(tMax - tMin, 1)) * 740;
        const y = (p) => 380 - ((p - pMin) / Math.max(pMax - pMin, 1)) * 360;

        series.forEach((s, idx) => {
          const coords = s.points.map((p) => `${x(new Date(p.observed_at).getTime())},${y(p.price)}`).join(' ');
          const line = document.createElementNS('http://www.w3.org/2000/svg', 'polyline');
          line.setAttribute('points', coords);
          line.setAttribute('fill', 'none');
          line.setAttribute('stroke', colorFor(idx));
          line.setAttribute('stroke-width', '2');
          svg.appendChild(line);
          const label = document.createElement('span');
          label.style.color = colorFor(idx);
          label.textContent = s.label;
          legend.appendChild(label);
        });
      }

      async function loadSeries() {
        const market = document.getElementById('market').value;
        const params = new URLSearchParams({ market });
        for (const key of selected) params.append('selection', key);
        try {
          const data = await getJson(`/odds/series?${params.toString()}`);
          drawChart(data.series);
          const errors = Object.keys(data.errors);
          document.getElementById('seriesErrors').textContent = errors.length
            ? `No data for: ${errors.join(', ')}`
            : '';
        } catch (error) {
          console.error(error);
        }
      }

      document.getElementById('market').addEventListener('change', loadSeries);

      document.getElementById('pollNow').addEventListener('click', async () => {
        const target = document.getElementById('pollResult');
        target.textContent = ' Polling...';
        try {
          const data = await getJson('/odds/poll', { method: 'POST' });
          target.textContent = ` Inserted ${data.inserted} snapshots`;
          await loadSeries();
        } catch (error) {
          target.textContent = ` Failed: ${error.message}`;
        }
      });

      loadGames().catch((error) => {
        document.getElementById('games').textContent = `Failed to load games: ${error.message}`;
      });
    </script>
  </body>
</html>""")
