from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

import openai
from openai import AsyncOpenAI

from db.models import ArtisanProfile, Product
from services.errors import AiGatewayFailure
from utils.config import settings
from utils.logger import get_logger
from utils.pure import parse_id_list

_logger = get_logger(__name__)

AiTask = Literal[
    "product_search",
    "search_suggestion",
    "connection_recommendation",
    "product_description",
    "artisan_suggestions",
]

MAX_SEARCH_SUGGESTIONS = 4


@dataclass(frozen=True)
class AiRequest:
    """
    What the caller wants from the model. Prompt wording is the gateway's
    business; callers only pass structured parameters.

    params by task:
      - product_search: query, products (list of Product)
      - search_suggestion: query
      - connection_recommendation: query, current (ArtisanProfile), artisans
      - product_description: keywords, craft_type, image (bytes), mime_type
      - artisan_suggestions: profile (ArtisanProfile)
    """

    task: AiTask
    params: Dict[str, Any] = field(default_factory=dict)


def _product_brief(products: Sequence[Product]) -> str:
    return json.dumps(
        [
            {
                "id": p.id,
                "name": p.name,
                "category": p.category,
                "price": p.price,
                "description": p.description,
            }
            for p in products
        ]
    )


def _artisan_brief(artisans: Sequence[ArtisanProfile]) -> str:
    return json.dumps(
        [
            {
                "id": a.id,
                "name": a.name,
                "specialty": a.specialty,
                "location": a.location,
                "experience": a.experience,
            }
            for a in artisans
        ]
    )


def build_prompt(request: AiRequest) -> str:
    p = request.params
    if request.task == "product_search":
        return (
            "You are a smart search assistant for an artisan marketplace.\n"
            f'Analyze the user\'s query: "{p["query"]}"\n'
            "And search through the following products:\n"
            f"{_product_brief(p['products'])}\n"
            "Return a JSON array of product IDs that best match the query.\n"
            'Only return the JSON array, nothing else. Example: ["prod1", "prod7"]'
        )
    if request.task == "search_suggestion":
        return (
            "You are a search suggestion assistant for an artisan marketplace.\n"
            f'Based on the user\'s partial query "{p["query"]}", provide up to '
            f"{MAX_SEARCH_SUGGESTIONS} relevant search suggestions.\n"
            'Return ONLY a JSON array of strings. Example: ["handmade ceramic mugs", '
            '"wooden cutting boards", "gifts under $50"]'
        )
    if request.task == "connection_recommendation":
        current: ArtisanProfile = p["current"]
        return (
            "You are a networking assistant for an artisan marketplace.\n"
            f"The current user is {current.name}, a specialist in {current.specialty}.\n"
            f'The user is searching for other artisans with the query: "{p["query"]}".\n'
            "Here is a list of available artisans:\n"
            f"{_artisan_brief(p['artisans'])}\n"
            "Return a JSON array of artisan IDs that would be a good connection or "
            "collaboration match.\n"
            'Only return the JSON array of IDs. Example: ["user2", "user4"]'
        )
    if request.task == "product_description":
        return (
            "You are a marketing expert for an online artisan marketplace.\n"
            "Generate a compelling, SEO-friendly product description for a new listing.\n"
            "Be evocative, detailed, and focus on the craftsmanship.\n\n"
            f"Craft Type: {p['craft_type']}\n"
            f"Keywords to include: {p['keywords']}\n\n"
            "Based on the image provided, write a description that includes:\n"
            '1. A catchy title (start with "Title:").\n'
            "2. A main description (2-3 paragraphs).\n"
            "3. A bulleted list of key features (materials, dimensions if inferable, "
            "unique aspects).\n\n"
            "Do not add any other formatting like markdown headers."
        )
    if request.task == "artisan_suggestions":
        profile: ArtisanProfile = p["profile"]
        return (
            "You are a business mentor for independent artists on an e-commerce platform.\n"
            f"Your client is {profile.name}, who specializes in {profile.specialty}.\n"
            "Provide 3-4 actionable, creative, and personalized suggestions to help them "
            "grow their business. Focus on these areas:\n"
            "- A new product idea based on current trends relevant to their specialty.\n"
            "- A marketing or social media tip.\n"
            "- A collaboration idea with another type of artisan.\n\n"
            "Format the response as a simple list. Start each suggestion with a relevant "
            "emoji. Do not use markdown."
        )
    raise ValueError(f"Unknown AI task: {request.task}")


class AiGateway:
    """
    Text-generation service behind the AI features.

    `_generate` is the only place that talks to the model; everything else is
    prompt building and response shaping. Failures of the call itself surface
    as AiGatewayFailure, while an unparseable ID list degrades to whatever
    can be read from it.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        *,
        client: Optional[AsyncOpenAI] = None,
        timeout: float = 60.0,
    ) -> None:
        self.model_name = model_name or settings.ai_model
        self._client = client
        self._timeout = timeout

    def _get_client(self) -> AsyncOpenAI:
        # created lazily so the app starts without an API key
        if self._client is None:
            self._client = AsyncOpenAI(max_retries=0, timeout=self._timeout)
        return self._client

    async def _generate(self, prompt: str, image: Optional[Dict[str, Any]] = None) -> str:
        """
        Single call without retries. `image` is {"data": bytes, "mime_type": str}.
        """
        if image:
            b64 = base64.b64encode(image["data"]).decode("ascii")
            model_input: Any = [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "input_image",
                            "image_url": f"data:{image['mime_type']};base64,{b64}",
                        },
                        {"type": "input_text", "text": prompt},
                    ],
                }
            ]
        else:
            model_input = prompt

        resp = await self._get_client().responses.create(
            model=self.model_name, input=model_input
        )
        text = getattr(resp, "output_text", "") or ""
        return text.strip()

    async def complete(self, request: AiRequest) -> str:
        prompt = build_prompt(request)
        image = None
        if request.task == "product_description" and request.params.get("image"):
            image = {
                "data": request.params["image"],
                "mime_type": request.params.get("mime_type") or "image/png",
            }
        try:
            return await self._generate(prompt, image)
        except openai.OpenAIError as e:
            _logger.error(f"AI call for {request.task} failed: {e}")
            raise AiGatewayFailure() from e

    async def complete_ids(self, request: AiRequest) -> List[str]:
        """Ask for a JSON array of ids; non-JSON answers fall back to one id per line."""
        text = await self.complete(request)
        ids = parse_id_list(text)
        _logger.debug(f"AI {request.task} returned {len(ids)} id(s)")
        return ids

    # task helpers

    async def search_products(
        self, query: str, products: Sequence[Product]
    ) -> List[Product]:
        """Products the model picked for `query`, in its order, unknown ids dropped."""
        ids = await self.complete_ids(
            AiRequest("product_search", {"query": query, "products": list(products)})
        )
        by_id = {p.id: p for p in products}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def suggest_searches(self, query: str) -> List[str]:
        suggestions = await self.complete_ids(
            AiRequest("search_suggestion", {"query": query})
        )
        return suggestions[:MAX_SEARCH_SUGGESTIONS]

    async def recommend_connections(
        self,
        query: str,
        current: ArtisanProfile,
        artisans: Sequence[ArtisanProfile],
    ) -> List[ArtisanProfile]:
        others = [a for a in artisans if a.id != current.id]
        ids = await self.complete_ids(
            AiRequest(
                "connection_recommendation",
                {"query": query, "current": current, "artisans": others},
            )
        )
        by_id = {a.id: a for a in others}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def generate_description(
        self,
        keywords: str,
        craft_type: str,
        image: Optional[bytes] = None,
        mime_type: str = "image/png",
    ) -> str:
        return await self.complete(
            AiRequest(
                "product_description",
                {
                    "keywords": keywords,
                    "craft_type": craft_type,
                    "image": image,
                    "mime_type": mime_type,
                },
            )
        )

    async def artisan_suggestions(self, profile: ArtisanProfile) -> List[str]:
        text = await self.complete(AiRequest("artisan_suggestions", {"profile": profile}))
        return [line.strip() for line in text.splitlines() if line.strip()]
