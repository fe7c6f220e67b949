import unittest
from types import SimpleNamespace

import support  # noqa: F401  (puts src/ on sys.path)

import openai  # noqa: E402

from db.models import ArtisanProfile, Product  # noqa: E402
from services.ai_gateway import AiGateway, AiRequest, build_prompt  # noqa: E402
from services.errors import AiGatewayFailure  # noqa: E402
from utils.pure import parse_id_list  # noqa: E402

PRODUCTS = [
    Product(id="prod1", name="Cerulean Splash Mug", category="Pottery", price=35.0, stock=15),
    Product(id="prod4", name="Hand-carved Wooden Spoon", category="Woodwork", price=25.0, stock=30),
    Product(id="prod6", name="Silver Mountain Ring", category="Jewelry", price=120.0, stock=10),
]
ELENA = ArtisanProfile(id="user1", name="Elena Vance", specialty="Handcrafted Pottery")
ARTISANS = [
    ELENA,
    ArtisanProfile(id="user2", name="Samuel Birch", specialty="Woodwork"),
    ArtisanProfile(id="user4", name="Aria Sterling", specialty="Jewelry"),
]


class FakeGateway(AiGateway):
    """Answers from a canned reply and records what it was asked."""

    def __init__(self, reply: str = "", error: Exception = None):
        super().__init__("fake-model")
        self.reply = reply
        self.error = error
        self.calls = []

    async def _generate(self, prompt, image=None):
        self.calls.append((prompt, image))
        if self.error:
            raise self.error
        return self.reply


class FakeResponses:
    def __init__(self, output_text: str):
        self.output_text = output_text
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(output_text=self.output_text)


class ParseIdListTestCase(unittest.TestCase):
    def test_json_array(self):
        self.assertEqual(parse_id_list('["prod1", "prod7"]'), ["prod1", "prod7"])

    def test_fenced_json(self):
        self.assertEqual(parse_id_list('```json\n["user2"]\n```'), ["user2"])

    def test_non_json_falls_back_to_lines(self):
        text = 'Here you go:\n- "prod1",\n* prod4\n2. prod6'
        self.assertEqual(parse_id_list(text), ["Here you go:", "prod1", "prod4", "prod6"])

    def test_non_array_json_is_empty(self):
        self.assertEqual(parse_id_list('{"ids": ["prod1"]}'), [])
        self.assertEqual(parse_id_list(""), [])
        self.assertEqual(parse_id_list(None), [])


class BuildPromptTestCase(unittest.TestCase):
    def test_product_search_prompt_lists_products(self):
        prompt = build_prompt(
            AiRequest("product_search", {"query": "blue mug", "products": PRODUCTS})
        )
        self.assertIn('"blue mug"', prompt)
        self.assertIn('"prod4"', prompt)
        self.assertIn("JSON array", prompt)

    def test_connection_prompt_names_current_user(self):
        prompt = build_prompt(
            AiRequest(
                "connection_recommendation",
                {"query": "frames", "current": ELENA, "artisans": ARTISANS[1:]},
            )
        )
        self.assertIn("Elena Vance", prompt)
        self.assertIn('"user2"', prompt)

    def test_unknown_task(self):
        with self.assertRaises(ValueError):
            build_prompt(AiRequest("poetry", {}))


class AiGatewayTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_search_products_keeps_known_ids_in_model_order(self):
        gateway = FakeGateway('["prod6", "ghost", "prod1", "prod6"]')
        found = await gateway.search_products("gift", PRODUCTS)
        self.assertEqual([p.id for p in found], ["prod6", "prod1"])

    async def test_search_products_tolerates_prose(self):
        gateway = FakeGateway("Sure! The best matches are:\nprod4\nprod1")
        found = await gateway.search_products("kitchen", PRODUCTS)
        self.assertEqual([p.id for p in found], ["prod4", "prod1"])

    async def test_suggest_searches_capped(self):
        gateway = FakeGateway('["a", "b", "c", "d", "e"]')
        self.assertEqual(await gateway.suggest_searches("gi"), ["a", "b", "c", "d"])

    async def test_recommend_connections_excludes_self(self):
        gateway = FakeGateway('["user1", "user4"]')
        found = await gateway.recommend_connections("jewelry", ELENA, ARTISANS)
        self.assertEqual([a.id for a in found], ["user4"])
        prompt, _ = gateway.calls[0]
        self.assertNotIn('"user1"', prompt)

    async def test_generate_description_passes_image(self):
        gateway = FakeGateway("Title: Mug\n\nLovely.")
        text = await gateway.generate_description(
            "blue, glossy", "Pottery", image=b"\x89PNG", mime_type="image/png"
        )
        self.assertTrue(text.startswith("Title:"))
        _, image = gateway.calls[0]
        self.assertEqual(image, {"data": b"\x89PNG", "mime_type": "image/png"})

        await gateway.generate_description("blue", "Pottery")
        self.assertIsNone(gateway.calls[1][1])

    async def test_artisan_suggestions_split_lines(self):
        gateway = FakeGateway("🏺 Try raku mugs\n\n📸 Post kiln reveals\n")
        self.assertEqual(
            await gateway.artisan_suggestions(ELENA),
            ["🏺 Try raku mugs", "📸 Post kiln reveals"],
        )

    async def test_model_errors_become_gateway_failures(self):
        gateway = FakeGateway(error=openai.OpenAIError("no api key"))
        with self.assertRaises(AiGatewayFailure):
            await gateway.search_products("mug", PRODUCTS)

    async def test_generate_uses_responses_api(self):
        responses = FakeResponses('  ["prod1"]  ')
        gateway = AiGateway("gpt-test", client=SimpleNamespace(responses=responses))

        ids = await gateway.complete_ids(AiRequest("search_suggestion", {"query": "m"}))
        self.assertEqual(ids, ["prod1"])
        self.assertEqual(responses.kwargs["model"], "gpt-test")
        self.assertIsInstance(responses.kwargs["input"], str)

        await gateway.generate_description("k", "Glass", image=b"abc", mime_type="image/jpeg")
        content = responses.kwargs["input"][0]["content"]
        self.assertEqual(content[0]["image_url"], "data:image/jpeg;base64,YWJj")
        self.assertEqual(content[1]["type"], "input_text")


if __name__ == "__main__":
    unittest.main()
