"""Ads Hub — Formula error types."""

from enum import Enum


class FormulaErrorCode(str, Enum):
    """Why a formula failed validation."""

    EMPTY_FORMULA = "empty_formula"
    UNBALANCED_PARENTHESES = "unbalanced_parentheses"
    INVALID_CHARACTERS = "invalid_characters"
    NO_VARIABLES = "no_variables"


ERROR_MESSAGES = {
    FormulaErrorCode.EMPTY_FORMULA: "Formula cannot be empty",
    FormulaErrorCode.UNBALANCED_PARENTHESES: "Unbalanced parentheses",
    FormulaErrorCode.INVALID_CHARACTERS: "Formula contains invalid characters",
    FormulaErrorCode.NO_VARIABLES: "Formula must contain at least one metric variable",
}


class FormulaSyntaxError(Exception):
    """Raised by the tokenizer/parser on malformed expressions."""

    def __init__(self, message: str, position: int = -1):
        self.position = position
        super().__init__(message)


class UnresolvedVariableError(Exception):
    """Raised when an expression references a name with no input value."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unresolved variable: {name}")
