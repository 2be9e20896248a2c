import io
import json
from PIL import Image
from pydantic import BaseModel
from google import genai
from google.genai import types

from config import MODEL_NAME


class CaptchaReading(BaseModel):
    text: str
    confidence: float = 0.0


PROMPT = """This image is a ticketing site captcha.
It contains exactly 6 uppercase Latin letters (A-Z), possibly distorted or crossed by lines.
There are no digits and no lowercase letters.

JSON response (no markdown):
{"text": "the 6 letters you read", "confidence": 0.0-1.0}"""


def parse_reading(text: str) -> CaptchaReading:
    """Parse the model reply, tolerating code fences and trailing garbage."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1]
        text = text.rsplit("```", 1)[0]
        text = text.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Find the first complete JSON object by matching braces
        depth = 0
        end_idx = 0
        for i, ch in enumerate(text):
            if ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
                if depth == 0:
                    end_idx = i + 1
                    break
        if end_idx == 0:
            raise
        data = json.loads(text[:end_idx])
    return CaptchaReading(**data)


class GeminiRecognizer:
    """Reads the captcha with a Gemini vision model instead of Tesseract."""

    def __init__(self, api_key: str, model_name: str = MODEL_NAME):
        self.client = genai.Client(api_key=api_key)
        self.model_name = model_name

    def recognize(self, image: Image.Image) -> str:
        buf = io.BytesIO()
        image.save(buf, format="PNG")
        print(f"    [vision] sending captcha ({len(buf.getvalue())} bytes), model={self.model_name}", flush=True)

        response = self.client.models.generate_content(
            model=self.model_name,
            contents=[
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_bytes(data=buf.getvalue(), mime_type="image/png"),
                        types.Part.from_text(text=PROMPT),
                    ]
                )
            ],
            config=types.GenerateContentConfig(
                temperature=0.0,
                response_mime_type="application/json",
            )
        )

        try:
            reading = parse_reading(response.text)
        except Exception as e:
            print(f"    [vision] PARSE ERROR: {e}", flush=True)
            return ""
        print(f"    [vision] read '{reading.text}' (confidence {reading.confidence:.2f})", flush=True)
        return reading.text
