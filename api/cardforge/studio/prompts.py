from __future__ import annotations


def build_flashcard_prompt(text: str, count: int) -> str:
    """
    Learner-facing instructions are German, like the rest of the product.
    The model must answer with one JSON array and nothing else.
    """
    return f"""Erstelle Lernkarten (Flashcards) basierend auf dem folgenden Text.
Zielgruppe: Lernende, die die wichtigsten Inhalte des Textes wiederholen möchten.
Anforderungen:
1.  Erstelle maximal {count} Lernkarten.
2.  Jede Lernkarte behandelt genau ein wichtiges Konzept, eine Definition oder einen Fakt aus dem Text.
3.  Die Vorderseite ist eine kurze, eindeutige Frage oder ein Begriff, die Rückseite die knappe, korrekte Antwort.
4.  Gib das Ergebnis ausschließlich als JSON-Array zurück, ohne Einleitung, Erklärung oder Markdown. Jedes Objekt im Array muss exakt die folgende Struktur haben:
    {{
      "front": "Frage oder Begriff als String.",
      "back": "Antwort oder Erklärung als String."
    }}
5.  Stelle sicher, dass das gesamte Ergebnis valides JSON ist. Strings dürfen keine unmaskierten Zeilenumbrüche enthalten.

Text:
---
{text}
---

JSON-Array mit Lernkarten:
"""


def build_quiz_prompt(text: str, count: int) -> str:
    return f"""Erstelle basierend auf dem folgenden Text ein Multiple-Choice-Quiz mit Mehrfachauswahlmöglichkeit.
Zielgruppe: Lernende, die den Inhalt des Textes verstehen und überprüfen möchten.
Anforderungen:
1.  Generiere genau {count} Fragen.
2.  Jede Frage muss sich klar auf wichtige Informationen oder Schlüsselkonzepte im Text beziehen.
3.  Formuliere die Fragen klar und eindeutig. Es kann EINE oder MEHRERE korrekte Antworten geben.
4.  Erstelle für jede Frage genau 4 Antwortoptionen (ein Array von Strings).
5.  Mindestens EINE der vier Optionen muss korrekt sein.
6.  Die falschen Antwortoptionen (Distraktoren) müssen plausibel klingen, aber eindeutig falsch sein.
7.  Gib das Ergebnis ausschließlich als JSON-Array zurück, ohne Einleitung, Erklärung oder Markdown. Jedes Objekt im Array repräsentiert eine Frage und muss exakt die folgende Struktur haben:
    {{
      "question": "Die Frage als String.",
      "options": ["Antwort A", "Antwort B", "Antwort C", "Antwort D"],
      "correctAnswerIndices": [0]
    }}
    "correctAnswerIndices" ist ein Array mit den Indizes (0-3) ALLER korrekten Antworten und enthält mindestens einen Index.
8.  Stelle sicher, dass das gesamte Ergebnis valides JSON ist. Strings dürfen keine unmaskierten Zeilenumbrüche enthalten.

Text:
---
{text}
---

JSON-Array mit Quizfragen (Mehrfachauswahl möglich):
"""
