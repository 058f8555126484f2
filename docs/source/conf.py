# ruff: noqa
"""Configuration file for the Sphinx documentation builder.

For the full list of built-in configuration values, see the documentation:
https://www.sphinx-doc.org/en/master/usage/configuration.html

-- Project information -----------------------------------------------------
https://www.sphinx-doc.org/en/master/usage/configuration.html#project-information
"""

import os
import sys
from datetime import date

sys.path.insert(0, os.path.abspath("../.."))

project = "Preference Tree"
copyright = f"{date.today().year}, Preference Tree developers"
author = "Preference Tree developers"
release = "0.1.0"

# -- General configuration ---------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#general-configuration

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.intersphinx",
    "sphinx.ext.autosummary",
    "sphinx_autodoc_typehints",
    "sphinxcontrib.autodoc_pydantic",
    "myst_parser",
]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "pandas": ("https://pandas.pydata.org/pandas-docs/stable", None),
    "numpy": ("https://numpy.org/doc/stable", None),
    "pydantic": ("https://docs.pydantic.dev/latest", None),
}

# Make Sphinx include type hints alongside docstring descriptions
autodoc_typehints = "description"
autosummary_generate = True
typehints_use_signature = False
typehints_fully_qualified = False
autoclass_content = "class"
autodoc_member_order = "groupwise"
python_use_unqualified_type_names = True
add_module_names = False
autodoc_default_options = {
    "members": True,
    "undoc-members": False,
    "inherited-members": False,
    "show-inheritance": True,
    "imported-members": False,
}

# Napoleon settings for Google-style docstrings
napoleon_google_docstring = True
napoleon_attr_types = False
napoleon_preprocess_types = True
napoleon_use_param = True
napoleon_use_rtype = True

# BuildOptions and Settings are pydantic models
autodoc_pydantic_model_member_order = "groupwise"
autodoc_pydantic_model_show_field_summary = False
autodoc_pydantic_field_list_style = "compact"
autodoc_pydantic_field_doc_policy = "description"
autodoc_pydantic_model_show_json = False
autodoc_pydantic_model_show_config_summary = True
autodoc_pydantic_settings_show_json = False

myst_enable_extensions = ["colon_fence", "deflist"]
myst_url_schemes = ("http", "https", "mailto")

nitpicky = True

nitpick_ignore = [
    ("py:class", "TreeNode"),
    ("py:class", "QuestionTreeNode"),
    ("py:class", "RandomState"),
    ("py:class", "Side"),
    ("py:class", "numpy.random.Generator"),
]

templates_path: list[str] = []
exclude_patterns = []

source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}

# -- Options for HTML output ------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#options-for-html-output
html_theme = "pydata_sphinx_theme"
html_title = "Preference Tree"
html_short_title = "Preference Tree"
html_theme_options = {
    "navbar_end": ["theme-switcher", "navbar-icon-links"],
    "navigation_depth": 3,
}
