"""Tests for web component extraction from ES6 sources."""

from phpscope.webcomponents import parse_component, parse_component_directory

TAB_SOURCE = """\
/**
 * Accessible tabs.
 */
class JoomlaTab extends HTMLElement {
  static get observedAttributes() {
    return ['orientation', 'recall', "breakpoint"];
  }

  get orientation() { return this.getAttribute('orientation'); }
  set orientation(value) { this.setAttribute('orientation', value); }
  get recall() { return this.hasAttribute('recall'); }

  activate(tab) {
    this.dispatchEvent(new CustomEvent('joomla.tab.show', { bubbles: true }));
    this.dispatchEvent(new CustomEvent('joomla.tab.shown'));
    this.dispatchEvent(new CustomEvent('joomla.tab.show'));
  }

  get template() {
    return `<div><slot name="tabs"></slot><slot></slot></div>`;
  }
}

customElements.define('joomla-tab', JoomlaTab);
"""


def test_full_component():
    component = parse_component(TAB_SOURCE, "system/joomla-tab.w-c.es6.js")
    assert component.tag_name == "joomla-tab"
    assert component.class_name == "JoomlaTab"
    assert component.file_path == "system/joomla-tab.w-c.es6.js"
    assert component.extends_element == "HTMLElement"
    assert component.attributes == ["orientation", "recall", "breakpoint"]
    assert [p.name for p in component.properties] == ["orientation", "recall", "template"]
    assert component.events == ["joomla.tab.show", "joomla.tab.shown"]
    assert component.slots == ["", "tabs"]
    assert "Accessible tabs." in component.docblock


def test_no_define_call():
    assert parse_component("class Helper { run() {} }", "helper.es6.js") is None


def test_minimal_component():
    source = "class JoomlaIcon extends HTMLElement {}\ncustomElements.define('joomla-icon', JoomlaIcon);\n"
    component = parse_component(source, "icon.es6.js")
    assert component.attributes == []
    assert component.properties == []
    assert component.events == []
    assert component.slots == []
    assert component.docblock is None


def test_docblock_must_precede_the_class():
    source = (
        "/** Helper docs. */\nfunction helper() {}\n"
        "class JoomlaBox extends HTMLElement {}\n"
        "customElements.define('joomla-box', JoomlaBox);\n"
    )
    assert parse_component(source, "box.es6.js").docblock is None


def test_words_ending_in_get_are_not_accessors():
    source = (
        "class JoomlaPanel extends HTMLElement {\n"
        "  update() { /* reset value(1); widget items(2) */ }\n"
        "}\n"
        "customElements.define('joomla-panel', JoomlaPanel);\n"
    )
    assert parse_component(source, "panel.es6.js").properties == []


def test_directory_scan(tmp_path):
    (tmp_path / "system" / "js").mkdir(parents=True)
    (tmp_path / "system" / "js" / "joomla-tab.w-c.es6.js").write_text(TAB_SOURCE)
    (tmp_path / "system" / "js" / "helper.es6.js").write_text("export const x = 1;\n")
    (tmp_path / "system" / "js" / "plain.js").write_text(TAB_SOURCE)

    components = parse_component_directory(tmp_path)
    assert len(components) == 1
    assert components[0].file_path == "system/js/joomla-tab.w-c.es6.js"


def test_directory_missing(tmp_path):
    assert parse_component_directory(tmp_path / "missing") == []
