"""Per-language few-shot examples.

Small models anchor their output format on the example, so the example's
language must match the input to avoid syntax bleeding across languages.
Languages without an example fall back to JavaScript.
"""

FEW_SHOT_EXAMPLES: dict[str, str] = {
    "JavaScript": """### EXAMPLE
Input:
```javascript
function add(a, b) {
  var result = a + b;
  var unused = 0;
  return result;
}
```
Output:
```javascript
function add(a, b) {
  const result = a + b;
  return result;
}
```
### END EXAMPLE""",

    "TypeScript": """### EXAMPLE
Input:
```typescript
function getNames(users: Array<{ name: string }>): string[] {
  var result: string[] = [];
  for (var i = 0; i < users.length; i++) {
    result.push(users[i].name);
  }
  return result;
}
```
Output:
```typescript
function getNames(users: Array<{ name: string }>): string[] {
  return users.map(u => u.name);
}
```
### END EXAMPLE""",

    "Python": """### EXAMPLE
Input:
```python
def bubble_sort(arr):
    n = len(arr)
    for i in range(n):
        for j in range(n - i - 1):
            if arr[j] > arr[j + 1]:
                arr[j], arr[j + 1] = arr[j + 1], arr[j]
    return arr
```
Output:
```python
def bubble_sort(arr):
    n = len(arr)
    for i in range(n - 1):
        swapped = False
        for j in range(n - i - 1):
            if arr[j] > arr[j + 1]:
                arr[j], arr[j + 1] = arr[j + 1], arr[j]
                swapped = True
        if not swapped:
            break
    return arr
```
### END EXAMPLE""",

    "Java": """### EXAMPLE
Input:
```java
public int sumArray(int[] arr) {
    int sum = 0;
    for (int i = 0; i < arr.length; i++) {
        sum = sum + arr[i];
    }
    return sum;
}
```
Output:
```java
public int sumArray(int[] arr) {
    int sum = 0;
    for (int val : arr) {
        sum += val;
    }
    return sum;
}
```
### END EXAMPLE""",

    "C++": """### EXAMPLE
Input:
```cpp
int findMax(std::vector<int>& v) {
    int max = v[0];
    for (int i = 1; i < v.size(); i++) {
        if (v[i] > max) max = v[i];
    }
    return max;
}
```
Output:
```cpp
int findMax(const std::vector<int>& v) {
    return *std::max_element(v.begin(), v.end());
}
```
### END EXAMPLE""",
}

DEFAULT_EXAMPLE_LANGUAGE = "JavaScript"

# Fenced-code-block identifiers. Unlisted languages use their lowercased name.
FENCE_TAGS: dict[str, str] = {
    "JavaScript": "javascript",
    "TypeScript": "typescript",
    "Python": "python",
    "Java": "java",
    "C++": "cpp",
}


def few_shot_example(language: str) -> str:
    return FEW_SHOT_EXAMPLES.get(language, FEW_SHOT_EXAMPLES[DEFAULT_EXAMPLE_LANGUAGE])


def fence_tag(language: str) -> str:
    return FENCE_TAGS.get(language, language.lower())
