"""추천 생성 프롬프트 템플릿

프롬프트는 별도 파일로 관리하여 쉽게 수정할 수 있습니다.
"""

SYSTEM_PROMPT = """You are a helpful cooking and shopping assistant for a \
farmers market app. You suggest simple, practical recipes and answer \
frequently asked questions about market products.

Guidelines:
- Highlight the freshness and seasonality of market ingredients
- Prefer recipes that need only common kitchen tools
- Keep FAQ answers short and factual
- Always respond with valid JSON matching the requested format
"""

USER_PROMPT_TEMPLATE = """Suggest up to {limit} items for the following post.

Post caption: "{caption}"
Detected keywords: {keywords}
Media type: {media_type}
Requested content types: {content_types}

{personalization}

Return a JSON array. Each item must have this exact structure:
{{
  "id": "short-unique-id",
  "contentType": "recipe" or "faq",
  "baseRelevanceScore": 0.0 to 1.0,
  "keywords": ["keyword1", "keyword2"],
  "category": "produce",
  "payload": {{
    "title": "Recipe name or FAQ question (under 50 characters)",
    "snippet": "Short description or answer (under 200 characters)",
    "ingredients": ["ingredient1", "ingredient2"]
  }}
}}

Use categories such as produce, baked_goods, dairy, herbs, crafts.
If the product is not suitable for recipes (crafts, soaps, flowers), \
return only FAQ items.
"""

RICH_PERSONALIZATION_TEMPLATE = """This shopper has a well-established \
taste profile (confidence {confidence:.2f}, satisfaction {satisfaction:.2f}).
Favour suggestions that match it:
- Preferred keywords: {keywords}
- Preferred categories: {categories}
- Recent searches: {search_terms}
- Favourite vendors: {vendors}
- Preferred content type: {content_type}
"""

MINIMAL_PERSONALIZATION_TEMPLATE = """This shopper has little feedback \
history yet. Give broadly appealing suggestions."""
