"""자동화 지문 마스킹.

playwright_stealth 의 evasion 묶음(webdriver, plugins, languages, chrome runtime,
permissions, WebGL vendor 등)을 컨텍스트에 적용하고, 라이브러리가 다루지 않는
항목(canvas noise, deviceMemory, connection, battery)만 EXTRA_INIT_SCRIPT 로 보강합니다.

모두 init script 로 등록되므로 반드시 페이지를 열기 전에 적용해야 합니다.
"""

from typing import Any

from playwright_stealth import Stealth

EXTRA_INIT_SCRIPT = r"""
(() => {
  const define = (obj, prop, getter) => {
    try { Object.defineProperty(obj, prop, { get: getter, configurable: true }); } catch (e) {}
  };

  // canvas
  const originalToDataURL = HTMLCanvasElement.prototype.toDataURL;
  HTMLCanvasElement.prototype.toDataURL = function (type) {
    try {
      const ctx = this.getContext('2d');
      if (ctx && this.width && this.height) {
        const imageData = ctx.getImageData(0, 0, this.width, this.height);
        for (let i = 0; i < imageData.data.length; i += 4) {
          imageData.data[i] += Math.random() < 0.1 ? 1 : 0;
        }
        ctx.putImageData(imageData, 0, 0);
      }
    } catch (e) {}
    return originalToDataURL.apply(this, [type]);
  };

  define(navigator, 'deviceMemory', () => 8);
  define(navigator, 'connection', () => ({ effectiveType: '4g', rtt: 100, downlink: 10, saveData: false }));

  // battery
  try {
    Object.defineProperty(navigator, 'getBattery', {
      value: () => Promise.resolve({ charging: true, chargingTime: 0, dischargingTime: Infinity, level: 1 }),
      configurable: true,
    });
  } catch (e) {}
})();
"""


def build_stealth() -> Stealth:
    # 컨텍스트 locale(ko-KR) 과 navigator.languages 를 맞춤
    return Stealth(navigator_languages_override=("ko-KR", "ko"))


async def apply_stealth(context: Any, stealth: Any) -> None:
    """컨텍스트에 stealth evasion + 보강 스크립트 등록 (new_page 전에 호출)"""
    await stealth.apply_stealth_async(context)
    await context.add_init_script(EXTRA_INIT_SCRIPT)
