"""Initial React + Vite + Tailwind project written into a fresh sandbox.

Paths are relative to the sandbox app directory. The set is fixed: it becomes
the session's FileManifest the moment it has been materialized.
"""

from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class ScaffoldFile:
    path: str
    content: str


_PACKAGE_JSON = {
    "name": "sandbox-app",
    "version": "1.0.0",
    "type": "module",
    "scripts": {
        "dev": "vite --host",
        "build": "vite build",
        "preview": "vite preview",
    },
    "dependencies": {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
    },
    "devDependencies": {
        "@vitejs/plugin-react": "^4.0.0",
        "vite": "^4.3.9",
        "tailwindcss": "^3.3.0",
        "postcss": "^8.4.31",
        "autoprefixer": "^10.4.16",
    },
}

_TAILWIND_CONFIG = """/** @type {import('tailwindcss').Config} */
export default {
  content: [
    "./index.html",
    "./src/**/*.{js,ts,jsx,tsx}",
  ],
  theme: {
    extend: {},
  },
  plugins: [],
}
"""

_POSTCSS_CONFIG = """export default {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
}
"""

_INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Sandbox App</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.jsx"></script>
  </body>
</html>
"""

_MAIN_JSX = """import React from 'react'
import ReactDOM from 'react-dom/client'
import App from './App.jsx'
import './index.css'

ReactDOM.createRoot(document.getElementById('root')).render(
  <React.StrictMode>
    <App />
  </React.StrictMode>,
)
"""

_APP_JSX = """function App() {
  return (
    <div className="min-h-screen bg-gray-900 text-white flex items-center justify-center p-4">
      <div className="text-center max-w-2xl">
        <p className="text-lg text-gray-400">
          Sandbox Ready<br/>
          Start building your React app with Vite and Tailwind CSS!
        </p>
      </div>
    </div>
  )
}

export default App
"""

_INDEX_CSS = """@tailwind base;
@tailwind components;
@tailwind utilities;

@layer base {
  :root {
    font-synthesis: none;
    text-rendering: optimizeLegibility;
    -webkit-font-smoothing: antialiased;
    -moz-osx-font-smoothing: grayscale;
    -webkit-text-size-adjust: 100%;
  }

  * {
    margin: 0;
    padding: 0;
    box-sizing: border-box;
  }
}

body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, sans-serif;
  background-color: rgb(17 24 39);
}
"""

STYLESHEET_PATH = "src/index.css"


def render_vite_config(*, port: int, allowed_host_suffix: str) -> str:
    # The preview is served from the provider's public hostname, not localhost.
    suffix = "." + (allowed_host_suffix or "").strip().lstrip(".")
    hosts = [suffix, "localhost", "127.0.0.1"] if suffix != "." else ["localhost", "127.0.0.1"]
    return (
        "import { defineConfig } from 'vite'\n"
        "import react from '@vitejs/plugin-react'\n"
        "\n"
        "export default defineConfig({\n"
        "  plugins: [react()],\n"
        "  server: {\n"
        "    host: '0.0.0.0',\n"
        f"    port: {int(port)},\n"
        "    strictPort: true,\n"
        "    hmr: false,\n"
        f"    allowedHosts: {json.dumps(hosts)}\n"
        "  }\n"
        "})\n"
    )


def build_scaffold(*, port: int = 5173, allowed_host_suffix: str = ".e2b.app") -> list[ScaffoldFile]:
    return [
        ScaffoldFile("package.json", json.dumps(_PACKAGE_JSON, indent=2) + "\n"),
        ScaffoldFile(
            "vite.config.js",
            render_vite_config(port=port, allowed_host_suffix=allowed_host_suffix),
        ),
        ScaffoldFile("tailwind.config.js", _TAILWIND_CONFIG),
        ScaffoldFile("postcss.config.js", _POSTCSS_CONFIG),
        ScaffoldFile("index.html", _INDEX_HTML),
        ScaffoldFile("src/main.jsx", _MAIN_JSX),
        ScaffoldFile("src/App.jsx", _APP_JSX),
        ScaffoldFile(STYLESHEET_PATH, _INDEX_CSS),
    ]


def scaffold_paths(files: list[ScaffoldFile]) -> set[str]:
    return {f.path for f in files}
