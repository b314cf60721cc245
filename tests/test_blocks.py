from html_sheet_extractor.blocks import (
    BlockDefinition,
    BlockOptions,
    classify_node,
    collect_blocks,
    derive_text_meta,
    is_skipped,
)

DOCUMENT = """
<html><body><div class="a4">
  <header class="letterhead"><h1>ACME S.A.</h1><p>Calle Falsa 123</p></header>
  <h2>Orden de compra</h2>
  <table><tr><td>Tornillo</td><td>3</td></tr></table>
  <div><p>Entrega en 5 días</p></div>
  <div data-export-skip="true"><p>Uso interno</p></div>
  <div style="display:none"><p>Oculto</p></div>
  <footer>Gracias</footer>
</div></body></html>
"""


class TestCollectBlocks:
    def test_blocks_in_document_order(self, make_soup, provider):
        root = make_soup(DOCUMENT).select_one(".a4")
        blocks = collect_blocks(root, provider)
        assert [b.type for b in blocks] == ["letterhead", "text", "table", "text", "footer"]
        assert blocks[1].meta == {"heading_level": 2}
        assert blocks[3].element.get_text() == "Entrega en 5 días"

    def test_skipped_and_hidden_content_is_ignored(self, make_soup, provider):
        root = make_soup(DOCUMENT).select_one(".a4")
        texts = [b.element.get_text(" ", strip=True) for b in collect_blocks(root, provider)]
        assert not any("Uso interno" in t or "Oculto" in t for t in texts)

    def test_no_generic_text_when_disabled(self, make_soup, provider):
        root = make_soup(DOCUMENT).select_one(".a4")
        blocks = collect_blocks(root, provider, BlockOptions(include_generic_text=False))
        assert [b.type for b in blocks] == ["letterhead", "text", "table", "footer"]

    def test_traversal_stops_at_first_match(self, make_soup, provider):
        root = make_soup("""
            <div id="root"><section data-export-block="custom"><table><tr><td>x</td></tr></table></section></div>
        """).find(id="root")
        options = BlockOptions(block_definitions=[BlockDefinition("note", ".nothing-here")],
                               include_generic_text=False)
        blocks = collect_blocks(root, provider, options)
        assert [b.type for b in blocks] == ["custom"]
        assert blocks[0].element.name == "section"

    def test_equal_looking_nodes_are_distinct_blocks(self, make_soup, provider):
        root = make_soup('<div id="root"><p>Igual</p><p>Igual</p></div>').find(id="root")
        blocks = collect_blocks(root, provider)
        assert len(blocks) == 2
        assert blocks[0].element is not blocks[1].element

    def test_each_element_claimed_once(self, make_soup, provider):
        root = make_soup('<div id="root"><div class="note remarks">n</div></div>').find(id="root")
        blocks = collect_blocks(root, provider)
        assert [b.type for b in blocks] == ["remarks"]

    def test_definition_with_find_function(self, make_soup, provider):
        root = make_soup('<div id="root"><div id="sig">Firma</div><p>otro</p></div>').find(id="root")
        definition = BlockDefinition("signature", find=lambda r: r.find(id="sig"), meta={"lines": 2})
        blocks = collect_blocks(root, provider, BlockOptions(block_definitions=[definition]))
        assert blocks[0].type == "signature"
        assert blocks[0].meta == {"lines": 2}
        assert [b.type for b in blocks] == ["signature", "text"]

    def test_definition_matches_respect_skip_marker(self, make_soup, provider):
        root = make_soup('<div id="root"><div data-export-skip="true"><table></table></div></div>').find(id="root")
        assert collect_blocks(root, provider) == []

    def test_list_items_from_fallback(self, make_soup, provider):
        root = make_soup('<div id="root"><ul><li>uno</li><li>dos</li></ul></div>').find(id="root")
        blocks = collect_blocks(root, provider)
        assert [b.element.get_text() for b in blocks] == ["uno", "dos"]
        assert all(b.meta == {"add_spacing": False} for b in blocks)

    def test_missing_root(self, provider):
        assert collect_blocks(None, provider) == []


class TestClassifier:
    def test_explicit_block_type_wins(self, make_soup):
        node = make_soup('<table data-export-block="summary"></table>').table
        assert classify_node(node).type == "summary"

    def test_rule_order(self, make_soup):
        soup = make_soup("""
            <h3 class="note">t</h3><dl></dl><aside>a</aside><div class="signature">s</div>
            <section data-export="text">x</section><div>plain</div>""")
        assert classify_node(soup.h3).meta == {"heading_level": 3}
        assert classify_node(soup.dl).type == "info-grid"
        assert classify_node(soup.aside).type == "note"
        assert classify_node(soup.select_one(".signature")).type == "signature"
        assert classify_node(soup.section).type == "text"
        assert classify_node(soup.select_one("div:not([class])")) is None

    def test_text_meta(self, make_soup):
        soup = make_soup('<p align="center">a</p><p class="text-right">b</p><p>c</p>')
        center, right, plain = soup.find_all("p")
        assert derive_text_meta(center) == {"align": "center"}
        assert derive_text_meta(right) == {"align": "right"}
        assert derive_text_meta(plain) == {}

    def test_skip_marker_on_ancestor(self, make_soup):
        soup = make_soup('<div data-export-skip="true"><span><b>x</b></span></div><i>y</i>')
        assert is_skipped(soup.b)
        assert not is_skipped(soup.i)
