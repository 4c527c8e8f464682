CSS_LOG = """
/* Base styles */
body {
    font-family: monospace;
    background: #1e1e1e;
    color: #e0e0e0;
}

.section {
    margin: 1.5em 0;
    padding: 1em;
    background: #2d2d2d;
    border-radius: 4px;
}

.subsection h4 {
    margin: 0.8em 0 0.4em 0;
    color: #9cdcfe;
}

.info { margin: 0.3em 0; }
.debug { margin: 0.3em 0; color: #8a8a8a; }
.warning { margin: 0.3em 0; color: #ffd166; }
.error { margin: 0.3em 0; color: #ff8080; }

.result {
    margin: 0.5em 0;
    padding: 0.4em 0.8em;
    border-left: 3px solid #4ec9b0;
}

.table-container table {
    border-collapse: collapse;
}

.table-container th,
.table-container td {
    padding: 4px 12px;
    border: 1px solid #3a3a3a;
    white-space: nowrap;
}

pre.lineage {
    background: #252526;
    padding: 0.8em;
    tab-size: 4;
}
"""
