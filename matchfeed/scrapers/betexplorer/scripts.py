"""In-page extraction scripts.

Each script receives the selector mapping as ``arguments[0]`` and returns a
plain JSON-like object. Scripts only read the DOM; interpretation happens in
the normalizer.
"""

# Rows of a fixtures table, the aggregate "today" view or the live board.
# Tournament header rows ("England: Premier League") set the region and
# competition of the rows that follow them.
ROWS_SCRIPT = r"""
const sel = arguments[0];
const clean = (el) => (el ? (el.textContent || '').replace(/\s+/g, ' ').trim() : null);

let region = null;
let competition = null;
const rows = [];

document.querySelectorAll(sel.row).forEach((tr) => {
    const header = tr.querySelector(sel.tournament_header);
    if (header) {
        const label = clean(header) || '';
        const split = label.indexOf(':');
        if (split > 0) {
            region = label.slice(0, split).trim();
            competition = label.slice(split + 1).trim();
        }
    }

    const teams = tr.querySelector(sel.teams);
    let homeTeam = null;
    let awayTeam = null;
    let matchLink = null;
    if (teams) {
        matchLink = teams.getAttribute('href');
        const spans = teams.querySelectorAll('span');
        if (spans.length >= 2) {
            homeTeam = clean(spans[0]);
            awayTeam = clean(spans[spans.length - 1]);
        } else {
            const parts = (clean(teams) || '').split(' - ');
            if (parts.length === 2) {
                homeTeam = parts[0].trim();
                awayTeam = parts[1].trim();
            }
        }
    }

    const status = tr.querySelector(sel.status_cell);
    const odds = Array.from(tr.querySelectorAll(sel.odds_cell)).slice(0, 3).map((td) => {
        const holder = td.querySelector('[data-odd]');
        const text = td.getAttribute('data-odd')
            || (holder ? holder.getAttribute('data-odd') : null)
            || clean(td);
        return { text: text, classes: (td.className || '').split(/\s+/).filter(Boolean) };
    });

    rows.push({
        homeTeam: homeTeam,
        awayTeam: awayTeam,
        matchLink: matchLink,
        dateText: clean(tr.querySelector(sel.date_cell)),
        statusClass: status ? status.className : '',
        statusText: clean(status),
        scoreText: clean(tr.querySelector(sel.score_cell)),
        odds: odds,
        region: region,
        competition: competition,
    });
});

return { rows: rows };
"""

# Final score of a single match page; null when the score element is missing.
RESULT_SCRIPT = r"""
const sel = arguments[0];
const el = document.querySelector(sel.result_score);
return { rows: [], scoreText: el ? (el.textContent || '').replace(/\s+/g, '').trim() : null };
"""
