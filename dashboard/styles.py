"""Dashboard CSS and inline JS (job cards, sticky pager)."""

CUSTOM_CSS = """
<style>
    :root {
        /* PAGER_JS keeps these in sync with stMain */
        --sf-main-left: 0px;
        --sf-main-width: 100vw;
    }

    .sf-job-card {
        border-radius: 10px;
        border: 1px solid #3d444d;
        background-color: #161b22;
        padding: 12px 16px;
        margin: 6px 0;
    }
    .sf-job-title { color: #e6edf3; font-weight: 600; font-size: 1.05rem; }
    .sf-job-meta { color: #8b949e; font-size: 0.85rem; margin-top: 2px; }
    .sf-job-rate { color: #3fb950; font-weight: 600; margin: 6px 0; }
    .sf-badge {
        display: inline-block;
        font-size: 0.75rem;
        color: #c9d1d9;
        background: #21262d;
        border: 1px solid #3d444d;
        border-radius: 999px;
        padding: 0.1rem 0.6rem;
        margin: 0.15rem 0.25rem 0 0;
    }
    .sf-badge.sf-applied { color: #0d1117; background: #58a6ff; border-color: #58a6ff; }

    .sf-alert-card { border-radius: 10px; padding: 10px 14px; margin: 6px 0; border-left: 4px solid; }

    /* Sticky bottom pagination bar */
    div[data-testid="stVerticalBlock"] div[data-testid="stVerticalBlock"]:has(.pagination-marker-unique) {
        position: fixed !important;
        left: var(--sf-main-left) !important;
        width: var(--sf-main-width) !important;
        right: auto !important;
        bottom: 0 !important;
        z-index: 9999 !important;
        background-color: rgba(26, 28, 36, 0.98) !important;
        border-top: 1px solid #3d444d !important;
        padding: 10px 16px !important;
    }

    /* Bottom space so the pager does not cover content */
    div[data-testid="stMain"] {
        padding-bottom: 92px !important;
    }

    .pager-text {
        color: #c9d1d9 !important;
        font-size: 0.9rem !important;
        margin: 0 !important;
    }
</style>
"""

PAGER_JS = """
<script>
(function() {
  function updateVars() {
    try {
      const doc = window.parent && window.parent.document ? window.parent.document : document;
      const main = doc.querySelector('[data-testid="stMain"]');
      if (!main) return;
      const r = main.getBoundingClientRect();
      doc.documentElement.style.setProperty('--sf-main-left', r.left + 'px');
      doc.documentElement.style.setProperty('--sf-main-width', r.width + 'px');
    } catch (e) {}
  }
  updateVars();
  window.addEventListener('resize', updateVars);
  setInterval(updateVars, 300);
})();
</script>
"""
