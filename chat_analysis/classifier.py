"""
Chat classifier using OpenAI.

Sends a rendered transcript with a fixed grading rubric and expects a JSON
object back:
- resolved: sim, nao, indefinido
- sentiment: positivo, neutro, negativo
- analysis: short rationale citing the conversation
- keywords: terms describing the customer's problem (string or list)

The response is untrusted. classify() returns either a ClassificationResult
or a ClassificationFailure; parse failures are never retried.
"""

import json
import logging
from typing import Optional

from openai import OpenAI
from pydantic import ValidationError

from . import config
from .models import ClassificationFailure, ClassificationOutcome, ClassificationResult

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("resolved", "sentiment", "analysis", "keywords")

SYSTEM_PROMPT = """
Você será encarregado de analisar um texto representando uma conversa de live chat de suporte técnico.
Sua missão consiste em duas partes principais:

Classificar o Sentimento da Conversa:
Avalie o diálogo e determine o sentimento geral expresso pelo cliente em relação ao atendimento recebido.
As opções de classificação são:
Positivo: O cliente demonstra satisfação ou felicidade com o serviço.
Neutro: O cliente expressa um tom indiferente, sem inclinação clara para satisfação ou insatisfação.
Negativo: O cliente mostra insatisfação, frustração ou qualquer forma de desagrado.

Determinar a Resolução do Problema:
Identifique se o cliente considerou o problema como resolvido ao final do atendimento.
As opções de resposta são:
Sim: O problema foi claramente resolvido durante a conversa.
Não: O problema permanece sem solução apesar do atendimento.
Indefinido: Não há informação suficiente para determinar se o problema foi resolvido.

Diretrizes para a Análise:
Baseie sua classificação do sentimento nas expressões verbais do cliente, levando em conta palavras-chave, tom e contexto. Ignore as mensagens de bot.
Para determinar a resolução do problema, considere as últimas interações do chat e qualquer confirmação explícita de resolução ou persistência do problema.
Na sua explicação para a classificação do sentimento, forneça exemplos específicos da conversa que justifiquem sua decisão.

Formato de Entrega:
Forneça suas conclusões em um objeto JSON estruturado da seguinte forma:
{{
  "resolved": "sim/nao/indefinido",
  "sentiment": "positivo/neutro/negativo",
  "analysis": "Sua explicação aqui, citando exemplos específicos da conversa para justificar a classificação do sentimento."
  "keywords": "Uma lista de palavras-chave importantes que traduzem o erro enfrentado pelo cliente, ignore palavras-chaves codiginas como: olá, bom dia, {bot_name}"
}}
Por favor, assegure-se de substituir os campos "sim/nao/indefinido" e "positivo/neutro/negativo" pela sua avaliação, e preencha o campo "motivo" 
com uma explicação concisa, mas informativa, limitado a 240 caracteres.
"""


def build_system_prompt(template: str = SYSTEM_PROMPT, bot_name: str = config.BOT_NAME_MARKER) -> str:
    """Fill the rubric template; the bot name is excluded from keywords."""
    return template.format(bot_name=bot_name.lower()).strip()


def parse_classification(raw_content: Optional[str]) -> ClassificationOutcome:
    """
    Validate a raw classifier response.

    Args:
        raw_content: The message content returned by the model

    Returns:
        ClassificationResult when the content is a JSON object with all of
        resolved/sentiment/analysis/keywords, ClassificationFailure otherwise
    """
    if raw_content is None or not raw_content.strip():
        return ClassificationFailure(reason="empty response", raw_content=raw_content)

    try:
        data = json.loads(raw_content)
    except json.JSONDecodeError as e:
        return ClassificationFailure(reason=f"invalid JSON: {e}", raw_content=raw_content)

    if not isinstance(data, dict):
        return ClassificationFailure(
            reason=f"expected a JSON object, got {type(data).__name__}",
            raw_content=raw_content,
        )

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        return ClassificationFailure(
            reason=f"missing keys: {', '.join(missing)}", raw_content=raw_content
        )

    try:
        return ClassificationResult(**{key: data[key] for key in REQUIRED_KEYS})
    except ValidationError as e:
        return ClassificationFailure(reason=f"invalid field shape: {e}", raw_content=raw_content)


class ChatClassifier:
    """OpenAI-backed transcript classifier."""

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        api_key: Optional[str] = None,
        model: str = config.OPENAI_MODEL,
        system_prompt: Optional[str] = None,
        max_retries: int = config.HTTP_MAX_RETRIES,
    ):
        # The OpenAI client retries timeouts, 429 and 5xx on its own
        self.client = client or OpenAI(api_key=api_key, max_retries=max_retries)
        self.model = model
        self.system_prompt = system_prompt or build_system_prompt()

    @classmethod
    def from_settings(cls, settings: config.Settings, client: Optional[OpenAI] = None):
        return cls(
            client=client,
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            system_prompt=build_system_prompt(bot_name=settings.bot_name_marker),
            max_retries=settings.http_max_retries,
        )

    def request(self, transcript: str) -> Optional[str]:
        """Send one completion request and return the raw message content.

        Transport errors (after the client's own retries) propagate.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": transcript},
            ],
        )
        return response.choices[0].message.content

    def classify(self, transcript: str, chat_id: Optional[str] = None) -> ClassificationOutcome:
        """
        Classify a transcript.

        Args:
            transcript: Output of render_transcript()
            chat_id: Used for log context only

        Returns:
            ClassificationResult or ClassificationFailure
        """
        raw_content = self.request(transcript)
        outcome = parse_classification(raw_content)
        if isinstance(outcome, ClassificationFailure):
            logger.warning(
                f"Unusable classification for chat {chat_id}: {outcome.reason} "
                f"(content: {(raw_content or '')[:200]!r})"
            )
        return outcome
