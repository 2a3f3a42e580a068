"""Unit tests for the structured-payload readers."""

from bookscout.parsing.document import PageDocument
from bookscout.parsing.payloads import (
    ApolloGraph,
    decode_json,
    dig,
    flatten_json_ld,
    merge_objects,
    names_of,
    read_json_ld,
    read_json_scripts,
)


class TestDecodeJson:
    def test_valid(self):
        assert decode_json('{"a": 1}') == {"a": 1}

    def test_malformed_is_absent(self):
        assert decode_json('{"props": {"pageProps": ') is None

    def test_blank_is_absent(self):
        assert decode_json("   ") is None
        assert decode_json(None) is None


class TestReadJsonScripts:
    def test_returns_every_decodable_block_in_order(self):
        html = """
        <html><body>
        <script type="application/json" class="blob">{"title": "First"}</script>
        <script type="application/json" class="blob">{not json</script>
        <script type="application/json" class="blob">{"title": "Second", "asin": "B0"}</script>
        </body></html>
        """
        payloads = read_json_scripts(PageDocument.from_html(html), "script.blob")
        assert payloads == [{"title": "First"}, {"title": "Second", "asin": "B0"}]

    def test_merge_first_block_wins(self):
        merged = merge_objects([{"title": "First", "asin": ""}, {"title": "Second", "asin": "B0"}, ["ignored"]])
        assert merged == {"title": "First", "asin": "B0"}


class TestJsonLd:
    def test_flatten_graph(self):
        nodes = flatten_json_ld({
            "@context": "https://schema.org",
            "@graph": [{"@type": "WebPage"}, {"@type": "Book", "name": "X"}],
        })
        assert [node["@type"] for node in nodes] == ["WebPage", "Book"]

    def test_read_filters_by_type(self):
        html = """
        <html><head>
        <script type="application/ld+json">[{"@type": "BreadcrumbList"}, {"@type": ["Book", "Product"], "name": "Dune"}]</script>
        <script type="application/ld+json">{broken</script>
        </head><body></body></html>
        """
        nodes = read_json_ld(PageDocument.from_html(html), ("Book",))
        assert len(nodes) == 1
        assert nodes[0]["name"] == "Dune"


class TestHelpers:
    def test_dig(self):
        data = {"props": {"pageProps": {"apolloState": {"k": 1}}}}
        assert dig(data, "props", "pageProps", "apolloState") == {"k": 1}
        assert dig(data, "props", "missing", "apolloState") is None
        assert dig(["not", "a", "dict"], "props") is None

    def test_names_of(self):
        assert names_of("Solo") == ["Solo"]
        assert names_of({"@type": "Person", "name": "Ann"}) == ["Ann"]
        assert names_of([{"name": "Ann"}, "Bob", {"id": 3}, 7]) == ["Ann", "Bob"]
        assert names_of(None) == []


class TestApolloGraph:
    STATE = {
        "props": {
            "pageProps": {
                "apolloState": {
                    "Book:kca://book/1": {"legacyId": 111, "title": "Other Edition"},
                    "Book:kca://book/2": {
                        "legacyId": 12345,
                        "title": "Wanted",
                        "primaryContributorEdge": {"node": {"__ref": "Contributor:kca://author/9"}},
                    },
                    "Contributor:kca://author/9": {"name": "Primary Author"},
                }
            }
        }
    }

    def test_missing_state(self):
        assert ApolloGraph.from_next_data({"props": {}}) is None
        assert ApolloGraph.from_next_data(None) is None

    def test_find_node_by_legacy_id(self):
        graph = ApolloGraph.from_next_data(self.STATE)
        assert graph.find_node("Book", "12345")["title"] == "Wanted"

    def test_find_node_defaults_to_first(self):
        graph = ApolloGraph.from_next_data(self.STATE)
        assert graph.find_node("Book")["title"] == "Other Edition"
        assert graph.find_node("Book", "999")["title"] == "Other Edition"
        assert graph.find_node("Series") is None

    def test_resolve_reference(self):
        graph = ApolloGraph.from_next_data(self.STATE)
        book = graph.find_node("Book", "12345")
        author = graph.resolve(book["primaryContributorEdge"]["node"])
        assert author == {"name": "Primary Author"}

    def test_dangling_reference_is_absent(self):
        graph = ApolloGraph.from_next_data(self.STATE)
        assert graph.resolve({"__ref": "Contributor:missing"}) is None
        assert graph.resolve("Contributor:kca://author/9") is None
        assert len(graph) == 3
