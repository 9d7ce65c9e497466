"""Self-extension tool: writes a new function module into the functions directory.

The coordinator loads, registers and publishes the new module right after
this returns.
"""

functionName = "createNewFunction"

functionOptions = {
    "type": "function",
    "function": {
        "name": functionName,
        "description": (
            "Create a new function. The code must be a complete Python module that "
            "defines functionName (a string equal to the new function's name), "
            "functionOptions (an OpenAI tool schema with that same name) and a "
            "callable named after functionName that accepts the schema's "
            "parameters as keyword arguments."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "The name of the new function",
                },
                "code": {
                    "type": "string",
                    "description": "The Python source code of the new function module",
                },
            },
            "required": ["name", "code"],
        },
    },
}


def createNewFunction(name, code):
    # function_author is injected by the loader
    path = function_author.create(None, name, code)  # noqa: F821
    return f"Function {name} created and saved to {path}"
