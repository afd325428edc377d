"""Shapes of the values that flow through the meme workflow."""

from __future__ import annotations

from memeforge.pipeline.shape import Shape, list_of, number, obj, string

MEME_REQUEST = Shape.of(
    userInput=string(description="Free-form description of what is frustrating the user"),
)

FRUSTRATIONS = Shape.of(
    frustrations=list_of(string(), description="Short kebab-case frustration categories"),
    message=string(description="One-sentence empathetic summary of the situation"),
)

TEMPLATE_REF = Shape.of(id=string(), name=string())

TEMPLATE = TEMPLATE_REF.extend(
    url=string(optional=True),
    boxCount=number(optional=True),
)

TEMPLATE_CANDIDATES = FRUSTRATIONS.extend(templates=list_of(TEMPLATE))

CAPTIONS = Shape.of(
    template=obj(TEMPLATE_REF),
    topText=string(),
    bottomText=string(),
)

MEME = CAPTIONS.extend(imageUrl=string(), pageUrl=string())

# What the model is asked to produce for the caption step.
CAPTION_CHOICE = Shape.of(
    templateId=string(description="Id of the chosen template, copied from the candidates"),
    topText=string(description="Text for the top of the image"),
    bottomText=string(description="Text for the bottom of the image"),
)
